from __future__ import annotations

from typing import List, Tuple

from models.document import (
    DocumentTree,
    ImageInstruction,
    PartyBlock,
    SignatureBlock,
    StyledTextInstruction,
)

_PARTY_LAYOUT: Tuple[Tuple[str, str], ...] = (
    ("company_name", "Company"),
    ("position", "Position"),
    ("registration_number", "Registration No."),
)


def _party_lines(party: PartyBlock) -> List[str]:
    lines = [f"【{party.role}】", party.name]
    for attr, label in _PARTY_LAYOUT:
        value = getattr(party, attr)
        if value:
            lines.append(f"{label}: {value}")
    lines.extend(party.address_lines)
    return lines


def _signature_mark(block: SignatureBlock) -> str:
    signature = block.signature
    if isinstance(signature, ImageInstruction):
        return "[signature image]"
    if isinstance(signature, StyledTextInstruction):
        return f"/s/ {signature.text}"
    return "________________________"


def _signature_lines(block: SignatureBlock) -> List[str]:
    lines = [f"【{block.role}】", _signature_mark(block), block.signer_name]
    if block.position:
        lines.append(block.position)
    if block.company_name:
        lines.append(block.company_name)
    lines.append(block.date_line)
    return lines


def format_document_as_text(tree: DocumentTree) -> str:
    """Render a composed contract into plain text (e-mail bodies, clipboard)."""
    title = tree.title
    lines: list[str] = [title.type_label]
    if title.title:
        lines.append(title.title)
    lines.append(f"Contract #: {title.contract_number}")
    if title.effective_date:
        lines.append(f"Effective Date: {title.effective_date}")
    lines.append("")

    for party in tree.parties:
        lines.extend(_party_lines(party))
        lines.append("")

    lines.extend(tree.recitals)
    lines.append("")
    lines.append("TERMS AND CONDITIONS")
    lines.append("")

    for section in tree.sections:
        lines.append(section.title)
        for paragraph in section.paragraphs:
            lines.append(f"{paragraph.label}: {paragraph.text}" if paragraph.label else paragraph.text)
        for subsection in section.subsections:
            lines.append(f"{subsection.number} {subsection.heading}")
            lines.extend(subsection.items)
        lines.append("")

    lines.append("IN WITNESS WHEREOF, the parties have executed this Agreement as of the date first written above.")
    lines.append("")
    for block in tree.signatures:
        lines.extend(_signature_lines(block))
        lines.append("")

    lines.append(tree.footer.text)
    text = "\n".join(lines).rstrip()
    return f"{text}\n"


__all__ = ["format_document_as_text"]
