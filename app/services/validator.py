from __future__ import annotations

from typing import Any, List, Tuple

from models.schemas import ContractData, Party, coerce_contract_data

from .assembler import suppressed_legal_keys
from .formatting import parse_date

MIN_DESCRIPTION_LENGTH = 50

REQUIRED_FIELDS = [
    ("party1.name", "First party name is required"),
    ("party2.name", "Second party name is required"),
    ("details.title", "Contract title is required"),
    ("details.contract_type", "Contract type is required"),
    ("details.start_date", "Start date is required"),
]


def _lookup(contract: ContractData, path: str) -> Any:
    node: Any = contract
    for part in path.split("."):
        node = getattr(node, part)
    return node


def _location_complete(party: Party) -> bool:
    return all(part.strip() for part in (party.city, party.state, party.country))


def validate_contract(contract: Any) -> Tuple[bool, List[str], List[str]]:
    """Check a draft before saving. Returns ``(is_valid, errors, warnings)``.

    Warnings never make a draft invalid, and neither list affects rendering.
    """
    data = coerce_contract_data(contract)
    errors: List[str] = []
    warnings: List[str] = []

    for path, message in REQUIRED_FIELDS:
        if not str(_lookup(data, path)).strip():
            errors.append(message)

    start = parse_date(data.details.start_date)
    end = parse_date(data.details.end_date)
    if data.details.end_date.strip() and end is None:
        errors.append("End date is not a valid date")
    if start is not None and end is not None and end <= start:
        errors.append("End date must be after start date")

    for key, label in (("party1", "First party"), ("party2", "Second party")):
        party: Party = getattr(data, key)
        if not party.email.strip():
            warnings.append(f"{label} email is recommended")
        if not party.address.strip():
            warnings.append(f"{label} address is recommended")
        elif not _location_complete(party):
            warnings.append(f"{label} city, state and country are recommended")

    if not data.details.end_date.strip():
        warnings.append("End date is recommended")
    if len(data.details.description.strip()) < MIN_DESCRIPTION_LENGTH:
        warnings.append(f"Contract description should be at least {MIN_DESCRIPTION_LENGTH} characters")
    if data.financials.total_value <= 0:
        warnings.append("Contract value should be greater than zero")

    if data.is_business_account:
        if not data.legal.jurisdiction.strip():
            warnings.append("Jurisdiction is recommended")
    else:
        suppressed = suppressed_legal_keys(data)
        if suppressed:
            warnings.append(
                "Legal clauses are only included for business accounts and will be omitted: "
                + ", ".join(suppressed)
            )

    return (len(errors) == 0, errors, warnings)


__all__ = ["REQUIRED_FIELDS", "validate_contract"]
