import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from services.composer import compose  # noqa: E402
from services.plaintext_writer import format_document_as_text  # noqa: E402


def _sample_contract() -> dict:
    return {
        "isBusinessAccount": False,
        "party1": {"name": "Alex Morgan", "address": "12 Harbor Way", "city": "Portland", "state": "OR"},
        "party2": {"name": "Riley Chen"},
        "details": {
            "contractNumber": "CNT-1001",
            "title": "Logo Design",
            "contractType": "freelance",
            "startDate": "2025-01-05",
            "endDate": "2025-02-05",
            "description": "Design a new logo.",
            "paymentTerms": "Net 15",
        },
        "objectives": ["Three concepts"],
        "signatures": {"party1": "Alex Morgan"},
    }


def test_format_document_as_text_produces_expected_layout():
    expected_text = (
        "FREELANCE AGREEMENT\n"
        "Logo Design\n"
        "Contract #: CNT-1001\n"
        "Effective Date: January 5, 2025\n"
        "\n"
        "【FIRST PARTY】\n"
        "Alex Morgan\n"
        "12 Harbor Way\n"
        "Portland, OR\n"
        "\n"
        "【SECOND PARTY】\n"
        "Riley Chen\n"
        "\n"
        "WHEREAS, the First Party desires to enter into this agreement with the Second Party; and\n"
        "WHEREAS, the Second Party agrees to the terms and conditions set forth herein;\n"
        "NOW, THEREFORE, in consideration of the mutual covenants and agreements contained herein, "
        "the parties agree as follows:\n"
        "\n"
        "TERMS AND CONDITIONS\n"
        "\n"
        "1. TERM OF AGREEMENT\n"
        "This Agreement shall commence on January 5, 2025 and shall continue until February 5, 2025, "
        "unless terminated earlier in accordance with the provisions herein.\n"
        "\n"
        "2. SCOPE OF WORK\n"
        "Design a new logo.\n"
        "2.1 OBJECTIVES\n"
        "1. Three concepts\n"
        "\n"
        "3. PAYMENT TERMS\n"
        "Net 15\n"
        "\n"
        "4. GENERAL PROVISIONS\n"
        "This Agreement constitutes the entire agreement between the parties and supersedes all prior "
        "understandings and agreements. Any modifications must be in writing and signed by both parties. "
        "If any provision is found unenforceable, the remainder shall remain in full force and effect.\n"
        "\n"
        "IN WITNESS WHEREOF, the parties have executed this Agreement as of the date first written above.\n"
        "\n"
        "【FIRST PARTY】\n"
        "/s/ Alex Morgan\n"
        "Alex Morgan\n"
        "Date: ________________\n"
        "\n"
        "【SECOND PARTY】\n"
        "________________________\n"
        "Riley Chen\n"
        "Date: ________________\n"
        "\n"
        "Contract #CNT-1001\n"
    )

    assert format_document_as_text(compose(_sample_contract())) == expected_text


def test_labelled_paragraphs_and_image_signatures():
    contract = _sample_contract()
    contract["financials"] = {"totalValue": 100, "paymentMethod": "Check"}
    contract["signatures"] = {"party2": {"type": "draw", "imageData": "data:image/png;base64,AAAA"}}

    text = format_document_as_text(compose(contract, generated_on="2025-02-01"))

    assert "Payment Method: Check" in text
    assert "[signature image]" in text
    assert text.endswith("Contract #CNT-1001 | Generated on February 1, 2025\n")
