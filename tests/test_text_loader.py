import io

import pytest
from docx import Document

from services.text_loader import load_text_from_bytes


def _make_pdf_with_text(text: str) -> bytes:
    def _escape(content: str) -> str:
        return content.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")

    escaped = _escape(text)
    content = f"BT\n/F1 24 Tf\n72 712 Td\n({escaped}) Tj\nET\n"
    content_bytes = content.encode("utf-8")
    objects = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        "<< /Type /Pages /Count 1 /Kids [3 0 R] >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        f"<< /Length {len(content_bytes)} >>\nstream\n{content}\nendstream",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    buffer = io.BytesIO()
    buffer.write(b"%PDF-1.4\n")
    offsets = [0]
    for index, obj in enumerate(objects, start=1):
        offsets.append(buffer.tell())
        buffer.write(f"{index} 0 obj\n".encode("ascii"))
        buffer.write(obj.encode("utf-8"))
        buffer.write(b"\nendobj\n")

    xref_pos = buffer.tell()
    buffer.write(f"xref\n0 {len(offsets)}\n".encode("ascii"))
    buffer.write(b"0000000000 65535 f \n")
    for offset in offsets[1:]:
        buffer.write(f"{offset:010d} 00000 n \n".encode("ascii"))
    buffer.write(b"trailer\n")
    buffer.write(f"<< /Size {len(offsets)} /Root 1 0 R >>\n".encode("ascii"))
    buffer.write(b"startxref\n")
    buffer.write(f"{xref_pos}\n".encode("ascii"))
    buffer.write(b"%%EOF")
    return buffer.getvalue()


def _make_docx(paragraphs: list[str], table_rows: list[list[str]] | None = None) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for row, values in zip(table.rows, table_rows):
            for cell, value in zip(row.cells, values):
                cell.text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def test_load_text_from_txt_bytes():
    content = "Service agreement between Northwind and Contoso.\nPayment terms: Net 30."
    result = load_text_from_bytes(content.encode("utf-8"), "sample.txt")
    assert "Service agreement" in result
    assert "Net 30" in result


def test_load_text_from_pdf_bytes():
    pdf_bytes = _make_pdf_with_text("Hello PDF")
    result = load_text_from_bytes(pdf_bytes, "sample.pdf")
    assert result == "Hello PDF"


def test_load_text_from_docx_bytes_includes_tables():
    docx_bytes = _make_docx(
        ["CONSULTING AGREEMENT", "", "Client: Northwind Traders"],
        table_rows=[["Total amount", "$12,500.00"]],
    )

    result = load_text_from_bytes(docx_bytes, "Contract.DOCX")

    assert result.splitlines() == [
        "CONSULTING AGREEMENT",
        "Client: Northwind Traders",
        "Total amount | $12,500.00",
    ]


def test_load_text_from_docx_bytes_raises_for_invalid_file():
    with pytest.raises(ValueError):
        load_text_from_bytes(b"not-a-docx", "contract.docx")


def test_load_text_from_bytes_raises_for_unknown_extension():
    with pytest.raises(ValueError):
        load_text_from_bytes(b"binary", "slides.pptx")


def test_load_text_from_bytes_raises_for_empty_payload():
    with pytest.raises(ValueError):
        load_text_from_bytes(b"", "empty.txt")
