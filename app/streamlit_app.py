from __future__ import annotations

import base64
import datetime
import hashlib
from typing import Any, Dict, List, Tuple

import streamlit as st

from config_loader import load_flag, load_setting
from services.composer import SCREEN, compose
from services.contract_store import PARTIES, ContractStore
from services.contract_types import available_types, storage_type
from services.extractor import extract_contract_fields, fields_to_patch
from services.html_renderer import render_html
from services.pdf_export import ExportError, PdfExporter
from services.text_loader import SUPPORTED_EXTENSIONS, load_text_from_bytes
from services.validator import validate_contract

PARTY_FIELDS: Tuple[Tuple[str, str, bool], ...] = (
    ("name", "Full name", False),
    ("email", "Email", False),
    ("phoneNumber", "Phone", False),
    ("address", "Street address", False),
    ("city", "City", False),
    ("state", "State / region", False),
    ("zipCode", "ZIP / postal code", False),
    ("country", "Country", False),
    ("companyName", "Company", True),
    ("position", "Position", True),
    ("registrationNumber", "Registration number", True),
)
LIST_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("objectives", "Objectives (one per line)"),
    ("deliverables", "Deliverables (one per line, optional ' | YYYY-MM-DD' deadline)"),
    ("milestones", "Milestones (one per line, optional ' | YYYY-MM-DD' deadline)"),
)
SIGNATURE_FONTS = (
    "Dancing Script",
    "Great Vibes",
    "Allura",
    "Pacifico",
    "Sacramento",
    "Satisfy",
    "Kaushan Script",
)
PARTY_LABELS = {"party1": "First Party", "party2": "Second Party"}


def _ensure_state() -> None:
    if "store" not in st.session_state:
        st.session_state["store"] = ContractStore(is_business_account=load_flag("business_account", False))
    st.session_state.setdefault("uploaded_file_digest", None)
    st.session_state.setdefault("extract_result", None)
    st.session_state.setdefault("export_result", None)
    if "exporter" not in st.session_state:
        st.session_state["exporter"] = PdfExporter(page_size=load_setting("pdf_page_size", "letter"))


def _parse_list(raw: str) -> List[Any]:
    items: List[Any] = []
    for line in (raw or "").splitlines():
        text, _, deadline = line.partition("|")
        text = text.strip()
        if not text:
            continue
        deadline = deadline.strip()
        items.append({"title": text, "deadline": deadline} if deadline else text)
    return items


def _list_as_text(items: List[Any]) -> str:
    lines = []
    for item in items:
        if isinstance(item, dict):
            title = str(item.get("title") or item.get("text") or "")
            deadline = str(item.get("deadline") or "")
            lines.append(f"{title} | {deadline}" if deadline else title)
        else:
            lines.append(str(item))
    return "\n".join(lines)


def _as_date(value: Any) -> datetime.date | None:
    try:
        return datetime.date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _upload_as_data_url(uploaded: Any) -> str:
    encoded = base64.b64encode(uploaded.getvalue()).decode("ascii")
    return f"data:{uploaded.type or 'image/png'};base64,{encoded}"


st.set_page_config(page_title="Contract Builder", layout="wide")
_ensure_state()
store: ContractStore = st.session_state["store"]

pending_patch = st.session_state.pop("pending_patch", None)
if isinstance(pending_patch, dict) and pending_patch:
    store.update(pending_patch)

raw = store.raw
business = bool(raw.get("isBusinessAccount"))

st.title("Contract Builder")

with st.sidebar:
    tier = st.toggle("Business account", value=business)
    if tier != business:
        store.set_account_tier(tier)
        st.rerun()

    st.subheader("Prefill from an existing contract")
    uploaded_file = st.file_uploader(
        "Upload a contract (" + " / ".join(ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS) + ")",
        type=[ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS],
        accept_multiple_files=False,
    )
    if uploaded_file is not None:
        data = uploaded_file.getvalue()
        digest = hashlib.sha256(data).hexdigest()
        if digest != st.session_state.get("uploaded_file_digest"):
            try:
                text = load_text_from_bytes(data, uploaded_file.name)
            except ValueError as exc:
                st.error(f"Could not read the file: {exc}")
            else:
                with st.spinner("Extracting contract terms…"):
                    result = extract_contract_fields(text)
                st.session_state["uploaded_file_digest"] = digest
                st.session_state["extract_result"] = result
                st.session_state["pending_patch"] = fields_to_patch(result.get("fields", {}))
                st.rerun()

    extract_result = st.session_state.get("extract_result")
    if extract_result:
        if extract_result.get("error"):
            st.info(extract_result["error"])
        missing = extract_result.get("missing_fields") or []
        if missing:
            st.warning("Not found in the upload: " + ", ".join(missing))
        for question in extract_result.get("follow_up_questions", []):
            st.caption(f"• {question}")

form_col, preview_col = st.columns([1, 1])

with form_col:
    patch: Dict[str, Any] = {}

    for party_key in PARTIES:
        with st.expander(PARTY_LABELS[party_key], expanded=party_key == "party1"):
            party_raw = raw.get(party_key, {})
            values = {}
            for field, label, business_only in PARTY_FIELDS:
                if business_only and not business:
                    continue
                values[field] = st.text_input(
                    label, value=str(party_raw.get(field) or ""), key=f"{party_key}_{field}"
                )
            patch[party_key] = values

    with st.expander("Contract details", expanded=True):
        details_raw = raw.get("details", {})
        types = available_types(business)
        codes = [entry.code for entry in types]
        current_type = details_raw.get("contractType") or "other"
        type_index = codes.index(current_type) if current_type in codes else 0
        chosen = st.selectbox(
            "Contract type",
            options=codes,
            index=type_index,
            format_func=lambda code: next(e.label for e in types if e.code == code),
        )
        stored, remapped = storage_type(chosen)
        if remapped:
            st.caption(f"Saved as '{stored}' in the contract register.")
        start = st.date_input("Start date", value=_as_date(details_raw.get("startDate")))
        end = st.date_input("End date", value=_as_date(details_raw.get("endDate")))
        auto_renew = st.checkbox("Auto renew", value=details_raw.get("autoRenew") is True)
        patch["details"] = {
            "contractNumber": st.text_input("Contract number", value=str(details_raw.get("contractNumber") or "")),
            "title": st.text_input("Title", value=str(details_raw.get("title") or "")),
            "contractType": chosen,
            "startDate": start.isoformat() if isinstance(start, datetime.date) else "",
            "endDate": end.isoformat() if isinstance(end, datetime.date) else "",
            "autoRenew": auto_renew,
            "renewalPeriod": st.number_input(
                "Renewal period (months)",
                min_value=1,
                value=int(details_raw.get("renewalPeriod") or 12),
                disabled=not auto_renew,
            ),
            "description": st.text_area("Scope of work", value=str(details_raw.get("description") or "")),
            "paymentTerms": st.text_area("Payment terms", value=str(details_raw.get("paymentTerms") or "")),
            "terminationClause": st.text_area(
                "Termination", value=str(details_raw.get("terminationClause") or "")
            ),
            "additionalTerms": st.text_area(
                "Additional terms", value=str(details_raw.get("additionalTerms") or "")
            ),
        }
        for field, label in LIST_FIELDS:
            patch[field] = _parse_list(st.text_area(label, value=_list_as_text(raw.get(field) or [])))

    with st.expander("Financial terms"):
        fin_raw = raw.get("financials", {})
        patch["financials"] = {
            "totalValue": st.number_input(
                "Total value", min_value=0.0, value=float(fin_raw.get("totalValue") or 0), step=100.0
            ),
            "currency": st.text_input("Currency (ISO code)", value=str(fin_raw.get("currency") or "USD")),
            "paymentSchedule": st.text_input("Payment schedule", value=str(fin_raw.get("paymentSchedule") or "")),
            "paymentMethod": st.text_input("Payment method", value=str(fin_raw.get("paymentMethod") or "")),
            "retainerAmount": st.number_input(
                "Retainer", min_value=0.0, value=float(fin_raw.get("retainerAmount") or 0), step=100.0
            ),
            "lateFee": st.number_input(
                "Late fee (% per month)", min_value=0.0, value=float(fin_raw.get("lateFee") or 0), step=0.5
            ),
            "expenseReimbursement": st.checkbox(
                "Reimburse expenses", value=fin_raw.get("expenseReimbursement") is True
            ),
            "notes": st.text_area("Additional financial terms", value=str(fin_raw.get("notes") or "")),
        }

    if business:
        with st.expander("Legal clauses"):
            legal_raw = raw.get("legal", {})
            patch["legal"] = {
                "jurisdiction": st.text_input("Governing law / jurisdiction", value=str(legal_raw.get("jurisdiction") or "")),
                "arbitrationClause": st.checkbox(
                    "Binding arbitration", value=legal_raw.get("arbitrationClause") is True
                ),
                "forceMajeureClause": st.checkbox(
                    "Force majeure", value=legal_raw.get("forceMajeureClause") is True
                ),
                "intellectualPropertyClause": st.text_area(
                    "Intellectual property", value=str(legal_raw.get("intellectualPropertyClause") or "")
                ),
                "nonDisclosureClause": st.text_area(
                    "Confidentiality", value=str(legal_raw.get("nonDisclosureClause") or "")
                ),
                "nonCompeteClause": st.text_area("Non-compete", value=str(legal_raw.get("nonCompeteClause") or "")),
                "warrantyClause": st.text_area(
                    "Warranty and liability", value=str(legal_raw.get("warrantyClause") or "")
                ),
            }

    snapshot = store.update(patch)

    with st.expander("Signatures"):
        signed, total, percent = store.signing_progress()
        st.progress(int(percent), text=f"{signed} of {total} parties signed")
        for party_key in PARTIES:
            st.markdown(f"**{PARTY_LABELS[party_key]}**")
            if store.get_signature(party_key):
                if st.button("Remove signature", key=f"remove_{party_key}"):
                    store.remove_signature(party_key)
                    st.rerun()
                continue
            typed_tab, upload_tab = st.tabs(["Type", "Upload"])
            with typed_tab:
                typed = st.text_input("Type your name", key=f"typed_{party_key}")
                font = st.selectbox("Style", SIGNATURE_FONTS, key=f"font_{party_key}")
                if st.button("Apply typed signature", key=f"apply_typed_{party_key}", disabled=not typed.strip()):
                    store.add_signature(party_key, typed.strip(), kind="type", font_family=font)
                    st.rerun()
            with upload_tab:
                image = st.file_uploader(
                    "Signature image", type=["png", "jpg", "jpeg"], key=f"upload_{party_key}"
                )
                if image is not None and st.button("Apply uploaded signature", key=f"apply_upload_{party_key}"):
                    store.add_signature(party_key, _upload_as_data_url(image), kind="upload")
                    st.rerun()
        if signed and st.button("Clear all signatures"):
            store.clear_signatures()
            st.rerun()

with preview_col:
    _ok, errors, warnings = validate_contract(snapshot)
    for message in errors:
        st.warning(message)
    for message in warnings:
        st.caption(f"⚠ {message}")

    tree = compose(snapshot, target_mode=SCREEN, generated_on=datetime.date.today())
    st.html(render_html(tree))

    if st.button("Generate PDF", type="primary", use_container_width=True):
        exporter: PdfExporter = st.session_state["exporter"]
        with st.spinner("Generating PDF…"):
            try:
                st.session_state["export_result"] = exporter.export(
                    snapshot, generated_on=datetime.date.today()
                )
            except ExportError as exc:
                st.session_state["export_result"] = None
                st.error(str(exc))

    export_result = st.session_state.get("export_result")
    if export_result is not None:
        st.download_button(
            "Download PDF",
            data=export_result.content,
            file_name=export_result.filename,
            mime=export_result.mime_type,
            use_container_width=True,
        )
