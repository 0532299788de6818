from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from models.document import (
    DocumentStyle,
    DocumentTree,
    Footer,
    PartyBlock,
    SignatureBlock,
    TitleBlock,
)
from models.schemas import ContractData, Party, coerce_contract_data

from .assembler import assemble, suppressed_legal_keys
from .contract_types import contract_type_display
from .formatting import format_date
from .signature import render_signature, signature_timestamp

logger = logging.getLogger(__name__)

SCREEN = "screen"
PRINT = "print"

TARGET_STYLES: Dict[str, DocumentStyle] = {
    SCREEN: DocumentStyle(mode=SCREEN, font_size_px=14, padding=5),
    PRINT: DocumentStyle(
        mode=PRINT,
        font_size_px=12,
        padding=4,
        monochrome=True,
        avoid_signature_page_break=True,
    ),
}

PARTY_ROLES = (
    ("party1", "FIRST PARTY", "[First Party Name]"),
    ("party2", "SECOND PARTY", "[Second Party Name]"),
)


def style_for(target_mode: str) -> DocumentStyle:
    try:
        return TARGET_STYLES[target_mode]
    except KeyError:
        raise ValueError(f"Unknown target mode: {target_mode!r} (expected 'screen' or 'print')") from None


def _title_block(contract: ContractData) -> TitleBlock:
    details = contract.details
    return TitleBlock(
        type_label=contract_type_display(details.contract_type),
        title=details.title.strip(),
        contract_number=details.contract_number.strip() or "N/A",
        effective_date=format_date(details.start_date),
    )


def _address_lines(party: Party) -> Tuple[str, ...]:
    locality = ", ".join(part.strip() for part in (party.city, party.state, party.zip_code) if part.strip())
    lines = (party.address.strip(), locality, party.country.strip())
    return tuple(line for line in lines if line)


def _party_block(party: Party, role: str, placeholder: str, business: bool) -> PartyBlock:
    return PartyBlock(
        role=role,
        name=party.name.strip() or placeholder,
        company_name=party.company_name.strip() if business else "",
        position=party.position.strip() if business else "",
        registration_number=party.registration_number.strip() if business else "",
        address_lines=_address_lines(party),
    )


def _recitals(contract: ContractData) -> Tuple[str, ...]:
    purpose = (
        "provide services" if contract.details.contract_type == "service_agreement" else "enter into this agreement"
    )
    return (
        f"WHEREAS, the First Party desires to {purpose} with the Second Party; and",
        "WHEREAS, the Second Party agrees to the terms and conditions set forth herein;",
        "NOW, THEREFORE, in consideration of the mutual covenants and agreements contained herein, "
        "the parties agree as follows:",
    )


def signature_source(contract: ContractData, party_key: str) -> Any:
    """The captured signature for a party, falling back to the legacy approvals slot."""
    captured = getattr(contract.signatures, party_key)
    if captured:
        return captured
    return {"dataURL": getattr(contract.approvals, f"{party_key}_signature")}


def _signature_block(
    contract: ContractData, party_key: str, role: str, placeholder: str, business: bool
) -> SignatureBlock:
    party: Party = getattr(contract, party_key)
    source = signature_source(contract, party_key)
    signed_date = format_date(signature_timestamp(source)) or format_date(
        getattr(contract.approvals, f"{party_key}_approved_date")
    )
    return SignatureBlock(
        role=role,
        signature=render_signature(source),
        signer_name=party.name.strip() or placeholder,
        position=party.position.strip() if business else "",
        company_name=party.company_name.strip() if business else "",
        signed_date=signed_date,
    )


def compose(
    contract: Any,
    is_business_account: Optional[bool] = None,
    target_mode: str = SCREEN,
    generated_on: Any = None,
) -> DocumentTree:
    """Build the complete document for one render pass.

    Screen preview and PDF export both call this function; ``target_mode``
    only picks the DocumentStyle, never which sections exist or how they are
    numbered. ``generated_on`` is printed in the footer when given.
    """
    style = style_for(target_mode)
    data = coerce_contract_data(contract)
    business = data.is_business_account if is_business_account is None else bool(is_business_account)

    if not business:
        suppressed = suppressed_legal_keys(data)
        if suppressed:
            logger.info("Legal clauses omitted for individual account: %s", ", ".join(suppressed))

    parties = tuple(
        _party_block(getattr(data, key), role, placeholder, business) for key, role, placeholder in PARTY_ROLES
    )
    signatures = tuple(
        _signature_block(data, key, role, placeholder, business) for key, role, placeholder in PARTY_ROLES
    )
    title = _title_block(data)

    return DocumentTree(
        title=title,
        parties=(parties[0], parties[1]),
        recitals=_recitals(data),
        sections=tuple(assemble(data, business)),
        signatures=(signatures[0], signatures[1]),
        footer=Footer(contract_number=title.contract_number, generated_on=format_date(generated_on)),
        style=style,
    )


__all__ = ["PRINT", "SCREEN", "TARGET_STYLES", "compose", "signature_source", "style_for"]
