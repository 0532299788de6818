import itertools
import sys
from pathlib import Path
from typing import Any, Dict, Iterable

import pytest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from models.schemas import coerce_contract_data  # noqa: E402
from services.assembler import (  # noqa: E402
    CONDITIONAL_RULES,
    LEGAL_RULE_KEYS,
    SCOPE_PLACEHOLDER,
    assemble,
    format_list_items,
    suppressed_legal_keys,
)

# One raw patch per conditional rule, each enough to switch that rule on.
TRIGGERS: Dict[str, Dict[str, Any]] = {
    "compensation": {"financials": {"totalValue": 5000}},
    "payment_terms": {"details": {"paymentTerms": "Net 30"}},
    "governing_law": {"legal": {"jurisdiction": "California"}},
    "dispute_resolution": {"legal": {"arbitrationClause": True}},
    "force_majeure": {"legal": {"forceMajeureClause": True}},
    "intellectual_property": {"legal": {"intellectualPropertyClause": "All IP belongs to the client."}},
    "confidentiality": {"legal": {"nonDisclosureClause": "Both parties keep terms confidential."}},
    "non_compete": {"legal": {"nonCompeteClause": "No competing work for 12 months."}},
    "warranty": {"legal": {"warrantyClause": "Services are provided as-is."}},
    "termination": {"details": {"terminationClause": "Either party may terminate with 30 days notice."}},
    "additional_terms": {"details": {"additionalTerms": "Work is performed remotely."}},
}


def _build(keys: Iterable[str], business: bool, **extra: Any) -> Dict[str, Any]:
    raw: Dict[str, Any] = {"isBusinessAccount": business, "details": {"startDate": "2025-01-01"}}
    for key in keys:
        for section, values in TRIGGERS[key].items():
            raw.setdefault(section, {}).update(values)
    for section, values in extra.items():
        raw.setdefault(section, {}).update(values)
    return raw


def _outline(raw: Dict[str, Any]):
    return [(s.number, s.heading) for s in assemble(coerce_contract_data(raw))]


def test_rule_table_covers_every_trigger():
    assert [rule.key for rule in CONDITIONAL_RULES] == list(TRIGGERS)


@pytest.mark.parametrize("business", [True, False])
def test_numbering_is_contiguous_for_every_trigger_subset(business):
    keys = list(TRIGGERS)
    for mask in itertools.product([False, True], repeat=len(keys)):
        chosen = [key for key, on in zip(keys, mask) if on]
        sections = assemble(coerce_contract_data(_build(chosen, business)))
        assert [s.number for s in sections] == list(range(1, len(sections) + 1))
        assert sections[0].key == "term"
        assert sections[1].key == "scope"
        assert sections[-1].key == "general_provisions"

        expected = [k for k in keys if k in chosen and (business or k not in LEGAL_RULE_KEYS)]
        assert [s.key for s in sections[2:-1]] == expected


def test_general_provisions_is_third_when_nothing_triggers():
    assert _outline(_build([], True)) == [
        (1, "TERM OF AGREEMENT"),
        (2, "SCOPE OF WORK"),
        (3, "GENERAL PROVISIONS"),
    ]


def test_business_arbitration_and_jurisdiction_example():
    assert _outline(_build(["governing_law", "dispute_resolution"], True)) == [
        (1, "TERM OF AGREEMENT"),
        (2, "SCOPE OF WORK"),
        (3, "GOVERNING LAW"),
        (4, "DISPUTE RESOLUTION"),
        (5, "GENERAL PROVISIONS"),
    ]


def test_business_example_with_financials_shifts_by_one():
    assert _outline(_build(["compensation", "governing_law", "dispute_resolution"], True)) == [
        (1, "TERM OF AGREEMENT"),
        (2, "SCOPE OF WORK"),
        (3, "COMPENSATION"),
        (4, "GOVERNING LAW"),
        (5, "DISPUTE RESOLUTION"),
        (6, "GENERAL PROVISIONS"),
    ]


def test_individual_payment_terms_example():
    assert _outline(_build(["payment_terms"], False)) == [
        (1, "TERM OF AGREEMENT"),
        (2, "SCOPE OF WORK"),
        (3, "PAYMENT TERMS"),
        (4, "GENERAL PROVISIONS"),
    ]


def test_individual_account_never_renders_legal_sections():
    raw = _build(list(TRIGGERS), False)
    keys = {s.key for s in assemble(coerce_contract_data(raw))}
    assert keys.isdisjoint(LEGAL_RULE_KEYS)
    assert set(suppressed_legal_keys(coerce_contract_data(raw))) == LEGAL_RULE_KEYS


def test_explicit_tier_overrides_the_record():
    contract = coerce_contract_data(_build(["governing_law"], True))
    assert "governing_law" not in [s.key for s in assemble(contract, is_business_account=False)]
    assert "governing_law" in [s.key for s in assemble(contract, is_business_account=True)]


def test_editing_description_keeps_numbers_stable():
    before = _outline(_build(["compensation", "termination"], True))
    after = _outline(_build(["compensation", "termination"], True, details={"description": "A new scope."}))
    assert before == after


def test_assemble_is_idempotent():
    contract = coerce_contract_data(_build(list(TRIGGERS), True))
    assert assemble(contract) == assemble(contract)


@pytest.mark.parametrize("flag", ["true", 1, "yes", None])
def test_legal_flags_only_accept_real_booleans(flag):
    raw = _build([], True, legal={"arbitrationClause": flag, "forceMajeureClause": flag})
    keys = [s.key for s in assemble(coerce_contract_data(raw))]
    assert "dispute_resolution" not in keys
    assert "force_majeure" not in keys


def test_whitespace_only_text_does_not_trigger():
    raw = _build([], True, details={"paymentTerms": "   ", "terminationClause": "\n"})
    assert _outline(raw)[-1] == (3, "GENERAL PROVISIONS")


def test_term_section_text():
    raw = _build([], False, details={"startDate": "2025-01-05", "endDate": "2026-01-05"})
    term = assemble(coerce_contract_data(raw))[0]
    assert term.paragraphs[0].text == (
        "This Agreement shall commence on January 5, 2025 and shall continue until January 5, 2026, "
        "unless terminated earlier in accordance with the provisions herein."
    )
    assert len(term.paragraphs) == 1


def test_term_section_mentions_auto_renewal():
    raw = _build([], False, details={"autoRenew": True, "renewalPeriod": 6})
    term = assemble(coerce_contract_data(raw))[0]
    assert "successive periods of 6 months" in term.paragraphs[1].text


def test_scope_placeholder_and_subsections():
    raw = _build(
        [],
        False,
        details={"description": ""},
    )
    raw["objectives"] = ["Launch the site", {"title": "Train staff"}]
    raw["deliverables"] = [{"text": "Design mockups", "deadline": "2025-02-01"}, {"title": "  "}, None]
    scope = assemble(coerce_contract_data(raw))[1]

    assert scope.paragraphs[0].text == SCOPE_PLACEHOLDER
    assert [(sub.number, sub.heading) for sub in scope.subsections] == [("2.1", "OBJECTIVES"), ("2.2", "DELIVERABLES")]
    assert scope.subsections[0].items == ("1. Launch the site", "2. Train staff")
    assert scope.subsections[1].items == ("1. Design mockups (Due: February 1, 2025)",)


def test_legacy_lists_under_details_are_used():
    raw = _build([], False, details={"milestones": ["Kickoff"]})
    scope = assemble(coerce_contract_data(raw))[1]
    assert [(sub.number, sub.items) for sub in scope.subsections] == [("2.3", ("1. Kickoff",))]


def test_compensation_paragraphs():
    raw = _build(
        [],
        True,
        financials={
            "totalValue": 12500,
            "currency": "EUR",
            "paymentSchedule": "50% upfront, 50% on delivery",
            "paymentMethod": "Bank transfer",
            "retainerAmount": 1000,
            "lateFee": 1.5,
            "expenseReimbursement": True,
            "notes": "Invoices are due within 15 days.",
        },
    )
    compensation = assemble(coerce_contract_data(raw))[2]
    assert compensation.key == "compensation"
    assert compensation.paragraphs[0].text == (
        "In consideration for the services rendered, Second Party shall pay First Party the total amount of "
        "€12,500.00. Payment shall be made according to the following schedule: 50% upfront, 50% on delivery."
    )
    assert [p.label for p in compensation.paragraphs[1:]] == [
        "Payment Method",
        "Retainer Amount",
        "Late Payment Fee",
        "Expenses",
        "Additional Financial Terms",
    ]
    assert "1.5% per month" in compensation.paragraphs[3].text


def test_governing_law_names_the_jurisdiction():
    sections = assemble(coerce_contract_data(_build(["governing_law"], True)))
    assert sections[2].paragraphs[0].text.endswith("the laws of California.")


def test_format_list_items_skips_unrenderable_entries():
    assert format_list_items(["a", {}, 3, True, {"title": "b", "deadline": "bad"}]) == ("1. a", "2. 3", "3. b")


def test_blank_title_does_not_hide_item_text():
    assert format_list_items([{"title": "   ", "text": "Launch the site"}]) == ("1. Launch the site",)
