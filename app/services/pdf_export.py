"""PDF export: compose the print tree, rasterize it, hand back a named blob."""

from __future__ import annotations

import base64
import binascii
import datetime
import io
import logging
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.platypus import (
    Image,
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from models.document import (
    DocumentTree,
    ImageInstruction,
    PartyBlock,
    SignatureBlock,
    StyledTextInstruction,
)

from .composer import PRINT, compose
from .signature import IMAGE_PREFIX

logger = logging.getLogger(__name__)

EXPORT_FAILED_MESSAGE = "Failed to generate PDF. Please try again."
PAGE_SIZES = {"letter": letter, "a4": A4}
PDF_MAGIC = b"%PDF"

Rasterizer = Callable[[DocumentTree, str], bytes]


class ExportError(RuntimeError):
    """Raised when a PDF could not be produced; the preview is left as it was."""

    def __init__(self, message: str = EXPORT_FAILED_MESSAGE, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class ExportSuperseded(ExportError):
    """Raised for an export that a newer request for the same document replaced."""

    def __init__(self, document_id: str):
        super().__init__(f"Export of {document_id} was superseded by a newer request.", retryable=False)
        self.document_id = document_id


@dataclass(frozen=True)
class ExportResult:
    filename: str
    content: bytes
    document_id: str
    mime_type: str = "application/pdf"


def export_filename(contract_number: Any, now: Optional[datetime.datetime] = None) -> str:
    """``contract-<number>.pdf``, or ``contract-<epoch ms>.pdf`` when there is no number."""
    number = str(contract_number or "").strip()
    if number in ("", "N/A"):
        moment = now or datetime.datetime.now(datetime.timezone.utc)
        number = str(int(moment.timestamp() * 1000))
    safe = re.sub(r"[\s/\\:]+", "-", number)
    return f"contract-{safe}.pdf"


# ----------------------------- reportlab rasterizer -----------------------------


def _decode_data_url(source: str) -> Optional[bytes]:
    if not source.startswith(IMAGE_PREFIX) or "," not in source:
        return None
    _header, encoded = source.split(",", 1)
    try:
        return base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError):
        logger.warning("Signature image could not be decoded; leaving the line blank")
        return None


def _scaled_image(instruction: ImageInstruction) -> Optional[Image]:
    payload = _decode_data_url(instruction.source)
    if payload is None:
        return None
    try:
        reader = ImageReader(io.BytesIO(payload))
        iw, ih = reader.getSize()
        reader.getRGBData()
    except Exception as exc:
        logger.warning("Signature image is not a readable image (%s); leaving the line blank", exc)
        return None
    if not iw or not ih:
        return None
    img = Image(io.BytesIO(payload))
    scale = min(instruction.max_width / float(iw), instruction.max_height / float(ih), 1.0)
    img.drawWidth = float(iw) * scale
    img.drawHeight = float(ih) * scale
    img.hAlign = "LEFT"
    return img


def _styles(tree: DocumentTree) -> Dict[str, ParagraphStyle]:
    ss = getSampleStyleSheet()
    size = tree.style.font_size_px * 0.75 + 1
    ink = colors.black if tree.style.monochrome else colors.HexColor("#1F2937")
    body = ParagraphStyle("ContractBody", parent=ss["BodyText"], fontName="Times-Roman", fontSize=size,
                          leading=size * 1.4, textColor=ink)
    return {
        "title": ParagraphStyle("ContractTitle", parent=body, fontName="Times-Bold", fontSize=size + 6,
                                leading=(size + 6) * 1.3, alignment=TA_CENTER),
        "center": ParagraphStyle("ContractCenter", parent=body, alignment=TA_CENTER),
        "heading": ParagraphStyle("ContractHeading", parent=body, fontName="Times-Bold", spaceBefore=8),
        "body": body,
        "small": ParagraphStyle("ContractSmall", parent=body, fontSize=size - 2, leading=(size - 2) * 1.3,
                                textColor=colors.black if tree.style.monochrome else colors.HexColor("#6B7280")),
        "signature": ParagraphStyle("ContractSignature", parent=body, fontName="Helvetica-Oblique",
                                    fontSize=size + 4, leading=(size + 4) * 1.3),
    }


def _party_flowables(party: PartyBlock, styles: Dict[str, ParagraphStyle]) -> List[Any]:
    lines = [f"<b>{escape(party.role)}</b>", escape(party.name)]
    if party.company_name:
        lines.append(escape(party.company_name))
    if party.position:
        lines.append(escape(party.position))
    if party.registration_number:
        lines.append(f"Registration No.: {escape(party.registration_number)}")
    lines.extend(escape(line) for line in party.address_lines)
    return [Paragraph(line, styles["body"]) for line in lines]


def _signature_flowables(block: SignatureBlock, styles: Dict[str, ParagraphStyle]) -> List[Any]:
    flowables: List[Any] = [Paragraph(f"<b>{escape(block.role)}</b>", styles["body"])]
    signature = block.signature
    mark: Any = None
    if isinstance(signature, ImageInstruction):
        mark = _scaled_image(signature)
    elif isinstance(signature, StyledTextInstruction):
        mark = Paragraph(escape(signature.text), styles["signature"])
    flowables.append(mark if mark is not None else Spacer(1, 45))
    flowables.append(Paragraph("_" * 32, styles["body"]))
    flowables.append(Paragraph(escape(block.signer_name), styles["body"]))
    if block.position:
        flowables.append(Paragraph(escape(block.position), styles["small"]))
    if block.company_name:
        flowables.append(Paragraph(escape(block.company_name), styles["small"]))
    flowables.append(Paragraph(escape(block.date_line), styles["small"]))
    return flowables


def render_pdf_bytes(tree: DocumentTree, page_size: str = "letter") -> bytes:
    """Rasterize a composed document with reportlab platypus."""
    styles = _styles(tree)
    story: List[Any] = []

    title = tree.title
    story.append(Paragraph(escape(title.type_label), styles["title"]))
    if title.title:
        story.append(Paragraph(escape(title.title), styles["center"]))
    story.append(Paragraph(f"Contract #: {escape(title.contract_number)}", styles["center"]))
    if title.effective_date:
        story.append(Paragraph(f"Effective Date: {escape(title.effective_date)}", styles["center"]))
    story.append(Spacer(1, 12))

    party_tbl = Table(
        [[_party_flowables(tree.parties[0], styles), _party_flowables(tree.parties[1], styles)]],
        colWidths=[3.4 * inch, 3.4 * inch],
    )
    party_tbl.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    story += [party_tbl, Spacer(1, 12)]

    for recital in tree.recitals:
        story.append(Paragraph(escape(recital), styles["body"]))
    story.append(Spacer(1, 8))
    story.append(Paragraph("TERMS AND CONDITIONS", styles["heading"]))

    for section in tree.sections:
        story.append(Paragraph(escape(section.title), styles["heading"]))
        for paragraph in section.paragraphs:
            text = escape(paragraph.text)
            if paragraph.label:
                text = f"<b>{escape(paragraph.label)}:</b> {text}"
            story.append(Paragraph(text, styles["body"]))
        for subsection in section.subsections:
            story.append(Paragraph(f"<b>{escape(subsection.number)} {escape(subsection.heading)}</b>", styles["body"]))
            story.extend(Paragraph(escape(item), styles["body"]) for item in subsection.items)

    witness = Paragraph(
        "IN WITNESS WHEREOF, the parties have executed this Agreement as of the date first written above.",
        styles["body"],
    )
    sig_tbl = Table(
        [[_signature_flowables(tree.signatures[0], styles), _signature_flowables(tree.signatures[1], styles)]],
        colWidths=[3.4 * inch, 3.4 * inch],
    )
    sig_tbl.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    signature_block: List[Any] = [Spacer(1, 12), witness, Spacer(1, 12), sig_tbl]
    if tree.style.avoid_signature_page_break:
        story.append(KeepTogether(signature_block))
    else:
        story.extend(signature_block)

    story += [Spacer(1, 18), Paragraph(escape(tree.footer.text), styles["small"])]

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=PAGE_SIZES.get(page_size.lower(), letter),
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.9 * inch,
        bottomMargin=0.9 * inch,
        title=f"Contract #{title.contract_number}",
    )
    doc.build(story)
    return buf.getvalue()


# ----------------------------- exporter -----------------------------


class PdfExporter:
    """One in-flight export per document; a newer request supersedes an older one."""

    def __init__(self, rasterizer: Rasterizer = render_pdf_bytes, page_size: str = "letter", max_workers: int = 2):
        self._rasterizer = rasterizer
        self._page_size = page_size
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pdf-export")
        self._lock = threading.Lock()
        self._generations: Dict[str, int] = {}
        self._pending: Dict[str, Future] = {}

    def _next_generation(self, document_id: str) -> int:
        with self._lock:
            generation = self._generations.get(document_id, 0) + 1
            self._generations[document_id] = generation
            return generation

    def _is_current(self, document_id: str, generation: int) -> bool:
        with self._lock:
            return self._generations.get(document_id) == generation

    def _run(
        self,
        contract: Any,
        is_business_account: Optional[bool],
        document_id: str,
        generation: int,
        generated_on: Any,
    ) -> ExportResult:
        tree = compose(contract, is_business_account, target_mode=PRINT, generated_on=generated_on)
        try:
            content = self._rasterizer(tree, self._page_size)
        except Exception as exc:
            logger.exception("PDF rasterization failed for %s", document_id)
            raise ExportError() from exc

        if not isinstance(content, (bytes, bytearray)) or not bytes(content).startswith(PDF_MAGIC):
            logger.error("Rasterizer returned a non-PDF payload for %s", document_id)
            raise ExportError()
        if not self._is_current(document_id, generation):
            raise ExportSuperseded(document_id)

        filename = export_filename(tree.title.contract_number)
        logger.info("Exported %s (%d bytes)", filename, len(content))
        return ExportResult(filename=filename, content=bytes(content), document_id=document_id)

    def export(
        self,
        contract: Any,
        is_business_account: Optional[bool] = None,
        document_id: str = "draft",
        generated_on: Any = None,
    ) -> ExportResult:
        """Export synchronously.

        Raises:
            ExportError: When rasterization fails or yields something that is not a PDF.
            ExportSuperseded: When a newer export for ``document_id`` started meanwhile.
        """
        generation = self._next_generation(document_id)
        return self._run(contract, is_business_account, document_id, generation, generated_on)

    def submit(
        self,
        contract: Any,
        is_business_account: Optional[bool] = None,
        document_id: str = "draft",
        generated_on: Any = None,
    ) -> "Future[ExportResult]":
        """Export in the background, cancelling any not-yet-started export of the same document."""
        generation = self._next_generation(document_id)
        with self._lock:
            previous = self._pending.get(document_id)
        if previous is not None and previous.cancel():
            logger.debug("Cancelled queued export of %s", document_id)

        future = self._executor.submit(
            self._run, contract, is_business_account, document_id, generation, generated_on
        )
        with self._lock:
            self._pending[document_id] = future
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)


__all__ = [
    "EXPORT_FAILED_MESSAGE",
    "ExportError",
    "ExportResult",
    "ExportSuperseded",
    "PdfExporter",
    "export_filename",
    "render_pdf_bytes",
]
