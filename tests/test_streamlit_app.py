import sys
from pathlib import Path

from streamlit.testing.v1 import AppTest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import config_loader  # noqa: E402

APP_PATH = APP_DIR / "streamlit_app.py"


def _run_app(monkeypatch, tmp_path) -> AppTest:
    config_loader.load_secrets.cache_clear()
    monkeypatch.setenv("STREAMLIT_SECRETS_PATH", str(tmp_path / "missing.toml"))
    app = AppTest.from_file(str(APP_PATH), default_timeout=60)
    app.run()
    assert not app.exception
    return app


def _generate_button(app: AppTest):
    return next(button for button in app.button if button.label == "Generate PDF")


def test_export_is_available_for_an_incomplete_draft(monkeypatch, tmp_path):
    app = _run_app(monkeypatch, tmp_path)

    assert "First party name is required" in [warning.value for warning in app.warning]
    assert not _generate_button(app).disabled


def test_incomplete_draft_exports_a_pdf(monkeypatch, tmp_path):
    app = _run_app(monkeypatch, tmp_path)

    _generate_button(app).click().run()

    assert not app.exception
    result = app.session_state["export_result"]
    assert result is not None
    assert result.content.startswith(b"%PDF")
