"""Render-ready document model shared by the preview and export surfaces."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class ImageInstruction:
    """Draw a captured signature image, scaled to fit the signature line."""

    source: str
    max_width: int = 200
    max_height: int = 60


@dataclass(frozen=True)
class StyledTextInstruction:
    """Typeset a typed (or legacy plain-text) signature."""

    text: str
    font_family: str = "cursive"
    italic: bool = True


RenderInstruction = Union[ImageInstruction, StyledTextInstruction]


@dataclass(frozen=True)
class Paragraph:
    text: str
    label: Optional[str] = None


@dataclass(frozen=True)
class Subsection:
    number: str
    heading: str
    items: Tuple[str, ...]


@dataclass(frozen=True)
class Section:
    number: int
    key: str
    heading: str
    paragraphs: Tuple[Paragraph, ...] = ()
    subsections: Tuple[Subsection, ...] = ()

    @property
    def title(self) -> str:
        return f"{self.number}. {self.heading}"


@dataclass(frozen=True)
class TitleBlock:
    type_label: str
    title: str
    contract_number: str
    effective_date: str


@dataclass(frozen=True)
class PartyBlock:
    role: str
    name: str
    company_name: str = ""
    position: str = ""
    registration_number: str = ""
    address_lines: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SignatureBlock:
    role: str
    signature: Optional[RenderInstruction]
    signer_name: str
    position: str = ""
    company_name: str = ""
    signed_date: str = ""

    @property
    def has_renderable_signature(self) -> bool:
        return self.signature is not None

    @property
    def date_line(self) -> str:
        return f"Date: {self.signed_date or '________________'}"


@dataclass(frozen=True)
class Footer:
    contract_number: str
    generated_on: str = ""

    @property
    def text(self) -> str:
        line = f"Contract #{self.contract_number}"
        if self.generated_on:
            line += f" | Generated on {self.generated_on}"
        return line


@dataclass(frozen=True)
class DocumentStyle:
    """Cosmetic settings only; nothing here changes which sections exist."""

    mode: str
    font_family: str = "Times New Roman, serif"
    font_size_px: int = 14
    padding: int = 5
    monochrome: bool = False
    avoid_signature_page_break: bool = False


@dataclass(frozen=True)
class DocumentTree:
    title: TitleBlock
    parties: Tuple[PartyBlock, PartyBlock]
    recitals: Tuple[str, ...]
    sections: Tuple[Section, ...]
    signatures: Tuple[SignatureBlock, SignatureBlock]
    footer: Footer
    style: DocumentStyle = field(default_factory=lambda: DocumentStyle(mode="screen"))

    def outline(self) -> Tuple[Tuple[int, str], ...]:
        """(number, heading) pairs, the part that must match between screen and print."""
        return tuple((section.number, section.heading) for section in self.sections)

    def has_renderable_signature(self, party: str) -> bool:
        index = {"party1": 0, "party2": 1}.get(party)
        if index is None:
            raise ValueError(f"Unknown party: {party}")
        return self.signatures[index].has_renderable_signature


__all__ = [
    "DocumentStyle",
    "DocumentTree",
    "Footer",
    "ImageInstruction",
    "Paragraph",
    "PartyBlock",
    "RenderInstruction",
    "Section",
    "SignatureBlock",
    "StyledTextInstruction",
    "Subsection",
    "TitleBlock",
]
