from __future__ import annotations

import re
from html import escape
from typing import List

from models.document import (
    DocumentStyle,
    DocumentTree,
    ImageInstruction,
    PartyBlock,
    SignatureBlock,
    StyledTextInstruction,
)

# Font family lists: names, spaces, commas and single quotes.
_FONT_FAMILY_PATTERN = re.compile(r"[A-Za-z0-9 ,'_-]+")
_FALLBACK_FONT = "cursive"


def _safe_font_family(font_family: str) -> str:
    if _FONT_FAMILY_PATTERN.fullmatch(font_family) and font_family.strip():
        return font_family
    return _FALLBACK_FONT


def _css(style: DocumentStyle) -> str:
    ink = "#000" if style.monochrome else "#1f2937"
    rules = [
        f".contract {{ font-family: {style.font_family}; font-size: {style.font_size_px}px; "
        f"padding: {style.padding * 4}px; color: {ink}; line-height: 1.5; background: #fff; }}",
        ".contract h1 { text-align: center; font-size: 1.6em; margin: 0 0 .2em; }",
        ".contract .meta { text-align: center; margin: 0; }",
        ".contract .parties { display: flex; gap: 2em; margin: 1.5em 0; }",
        ".contract .parties > div, .contract .signatures > div { flex: 1; }",
        ".contract h3 { font-size: 1em; margin: 1.2em 0 .4em; }",
        ".contract h4 { font-size: 1em; margin: .8em 0 .2em; }",
        ".contract .signatures { display: flex; gap: 2em; margin-top: 2em; }",
        ".contract .sig-mark { min-height: 60px; border-bottom: 1px solid #000; margin-bottom: .3em; }",
        ".contract .sig-mark img { max-width: 200px; max-height: 60px; }",
        ".contract footer { margin-top: 2em; font-size: .85em; color: #6b7280; }",
    ]
    if style.monochrome:
        rules.append(".contract * { color: #000 !important; background: transparent !important; }")
    if style.avoid_signature_page_break:
        rules.append(".contract .signature-page { page-break-inside: avoid; break-inside: avoid; }")
    return "\n".join(rules)


def _party_html(party: PartyBlock) -> str:
    lines = [f"<strong>{escape(party.role)}</strong>", escape(party.name)]
    for value in (party.company_name, party.position):
        if value:
            lines.append(escape(value))
    if party.registration_number:
        lines.append(f"Registration No.: {escape(party.registration_number)}")
    lines.extend(escape(line) for line in party.address_lines)
    return "<div>" + "<br>".join(lines) + "</div>"


def _signature_mark(block: SignatureBlock) -> str:
    signature = block.signature
    if isinstance(signature, ImageInstruction):
        return (
            f'<img src="{escape(signature.source, quote=True)}" alt="Signature" '
            f'style="max-width:{signature.max_width}px;max-height:{signature.max_height}px">'
        )
    if isinstance(signature, StyledTextInstruction):
        font_style = "italic" if signature.italic else "normal"
        return (
            f'<span style="font-family:{escape(_safe_font_family(signature.font_family), quote=True)};'
            f'font-style:{font_style};font-size:1.6em">{escape(signature.text)}</span>'
        )
    return ""


def _signature_html(block: SignatureBlock) -> str:
    parts = [
        f"<strong>{escape(block.role)}</strong>",
        f'<div class="sig-mark">{_signature_mark(block)}</div>',
        escape(block.signer_name),
    ]
    for value in (block.position, block.company_name):
        if value:
            parts.append(escape(value))
    parts.append(escape(block.date_line))
    return "<div>" + "<br>".join(parts) + "</div>"


def render_html(tree: DocumentTree) -> str:
    """Render a composed contract as a self-contained HTML fragment for the preview pane."""
    title = tree.title
    out: List[str] = [f"<style>{_css(tree.style)}</style>", f'<article class="contract {escape(tree.style.mode)}">']

    out.append(f"<h1>{escape(title.type_label)}</h1>")
    if title.title:
        out.append(f'<p class="meta">{escape(title.title)}</p>')
    out.append(f'<p class="meta">Contract #: {escape(title.contract_number)}</p>')
    if title.effective_date:
        out.append(f'<p class="meta">Effective Date: {escape(title.effective_date)}</p>')

    out.append('<section class="parties">' + "".join(_party_html(p) for p in tree.parties) + "</section>")
    out.extend(f"<p>{escape(recital)}</p>" for recital in tree.recitals)
    out.append("<h2>TERMS AND CONDITIONS</h2>")

    for section in tree.sections:
        out.append(f'<section data-key="{escape(section.key)}">')
        out.append(f"<h3>{escape(section.title)}</h3>")
        for paragraph in section.paragraphs:
            label = f"<strong>{escape(paragraph.label)}:</strong> " if paragraph.label else ""
            out.append(f"<p>{label}{escape(paragraph.text)}</p>")
        for subsection in section.subsections:
            out.append(f"<h4>{escape(subsection.number)} {escape(subsection.heading)}</h4>")
            out.append("<div>" + "<br>".join(escape(item) for item in subsection.items) + "</div>")
        out.append("</section>")

    out.append('<div class="signature-page">')
    out.append(
        "<p>IN WITNESS WHEREOF, the parties have executed this Agreement as of the date first written above.</p>"
    )
    out.append('<section class="signatures">' + "".join(_signature_html(s) for s in tree.signatures) + "</section>")
    out.append("</div>")
    out.append(f"<footer>{escape(tree.footer.text)}</footer>")
    out.append("</article>")
    return "\n".join(out)


__all__ = ["render_html"]
