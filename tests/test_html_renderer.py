import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from services.composer import compose  # noqa: E402
from services.html_renderer import render_html  # noqa: E402

PNG_URL = "data:image/png;base64,iVBORw0KGgo="


def _sample_contract() -> dict:
    return {
        "party1": {"name": "Alex <Admin> Morgan"},
        "party2": {"name": "Riley Chen"},
        "details": {"contractNumber": "CNT-7", "startDate": "2025-01-05", "terminationClause": "30 days notice"},
        "signatures": {
            "party1": {"type": "type", "text": "Alex", "fontFamily": "Great Vibes"},
            "party2": {"type": "upload", "imageData": PNG_URL},
        },
    }


def test_render_html_escapes_user_text():
    html = render_html(compose(_sample_contract()))
    assert "Alex &lt;Admin&gt; Morgan" in html
    assert "<Admin>" not in html


def test_render_html_sections_in_order():
    html = render_html(compose(_sample_contract()))
    positions = [html.index(heading) for heading in ("1. TERM OF AGREEMENT", "2. SCOPE OF WORK", "3. TERMINATION", "4. GENERAL PROVISIONS")]
    assert positions == sorted(positions)


def test_render_html_signatures():
    html = render_html(compose(_sample_contract()))
    assert "font-family:Great Vibes;font-style:italic" in html
    assert f'src="{PNG_URL}"' in html
    assert "max-width:200px;max-height:60px" in html


def test_print_styles_only_apply_to_print_mode():
    screen = render_html(compose(_sample_contract(), target_mode="screen"))
    printed = render_html(compose(_sample_contract(), target_mode="print"))

    assert "page-break-inside: avoid" not in screen
    assert "page-break-inside: avoid" in printed
    assert "font-size: 12px" in printed
    assert "font-size: 14px" in screen


def test_typed_signature_font_cannot_inject_css():
    contract = _sample_contract()
    contract["signatures"]["party1"] = {
        "type": "type",
        "text": "Alex",
        "fontFamily": "Allura;background:url(https://example.com/x)",
    }
    html = render_html(compose(contract))
    assert "background:url" not in html
    assert "font-family:cursive;font-style:italic" in html
