from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, List, Optional, Sequence, Tuple

from models.document import Paragraph, Section, Subsection
from models.schemas import ContractData

from .formatting import DEFAULT_CURRENCY, format_currency, format_date, safe_text

logger = logging.getLogger(__name__)

SCOPE_PLACEHOLDER = "The specific scope of work shall be as mutually agreed upon by both parties."
FORCE_MAJEURE_TEXT = (
    "Neither party shall be liable for any failure or delay in performance under this Agreement "
    "which is due to circumstances beyond their reasonable control, including but not limited to "
    "acts of God, war, terrorism, epidemic, government regulations, disasters, strikes, or other "
    "labor disputes."
)
EXPENSES_TEXT = (
    "All reasonable expenses incurred in the performance of services shall be reimbursed upon "
    "presentation of appropriate documentation."
)
GENERAL_PROVISIONS_TEXT = (
    "This Agreement constitutes the entire agreement between the parties and supersedes all prior "
    "understandings and agreements. Any modifications must be in writing and signed by both parties. "
    "If any provision is found unenforceable, the remainder shall remain in full force and effect."
)

Paragraphs = Tuple[Paragraph, ...]


@dataclass(frozen=True)
class ClauseRule:
    """One optional, numbered section and the data that switches it on."""

    key: str
    heading: str
    trigger: Callable[[ContractData], bool]
    build: Callable[[ContractData], Paragraphs]
    business_only: bool = False


def _has_text(value: Any) -> bool:
    return bool(safe_text(value).strip())


def _currency(contract: ContractData) -> str:
    return contract.financials.currency or contract.details.currency or DEFAULT_CURRENCY


def _percent(value: Decimal) -> str:
    return format(value.normalize(), "f")


# ----------------------------- list items -----------------------------


def normalize_list_item(item: Any) -> Optional[Tuple[str, str]]:
    """Reduce a legacy list entry to ``(text, deadline)``; None when nothing renders."""
    if isinstance(item, Mapping):
        text = safe_text(item.get("title")).strip() or safe_text(item.get("text")).strip()
        deadline = format_date(item.get("deadline"))
    elif isinstance(item, (str, int, float)) and not isinstance(item, bool):
        text = safe_text(item)
        deadline = ""
    else:
        return None
    text = text.strip()
    if not text:
        return None
    return text, deadline


def format_list_items(items: Sequence[Any]) -> Tuple[str, ...]:
    lines: List[str] = []
    for item in items:
        normalized = normalize_list_item(item)
        if normalized is None:
            continue
        text, deadline = normalized
        line = f"{len(lines) + 1}. {text}"
        if deadline:
            line += f" (Due: {deadline})"
        lines.append(line)
    return tuple(lines)


# ----------------------------- fixed sections -----------------------------


def _term_paragraphs(contract: ContractData) -> Paragraphs:
    details = contract.details
    start = format_date(details.start_date)
    end = format_date(details.end_date)

    opening = f"This Agreement shall commence on {start}" if start else (
        "This Agreement shall commence on the date of its execution by both parties"
    )
    if end:
        closing = f" and shall continue until {end}, unless terminated earlier in accordance with the provisions herein."
    else:
        closing = " and shall continue until terminated in accordance with the provisions herein."
    paragraphs = [Paragraph(opening + closing)]

    if details.auto_renew:
        months = details.renewal_period
        unit = "month" if months == 1 else "months"
        paragraphs.append(
            Paragraph(
                f"Upon expiration, this Agreement shall automatically renew for successive periods of "
                f"{months} {unit} unless either party provides written notice of non-renewal prior to "
                "the end of the then-current term."
            )
        )
    return tuple(paragraphs)


def _scope_paragraphs(contract: ContractData) -> Paragraphs:
    description = contract.details.description.strip()
    return (Paragraph(description or SCOPE_PLACEHOLDER),)


def _scope_subsections(contract: ContractData) -> Tuple[Subsection, ...]:
    # Sub-numbers are fixed labels and never take a number from the main sequence.
    candidates = (
        ("2.1", "OBJECTIVES", contract.objectives),
        ("2.2", "DELIVERABLES", contract.deliverables),
        ("2.3", "MILESTONES", contract.milestones),
    )
    subsections = []
    for number, heading, items in candidates:
        lines = format_list_items(items)
        if lines:
            subsections.append(Subsection(number=number, heading=heading, items=lines))
    return tuple(subsections)


# ----------------------------- conditional sections -----------------------------


def _compensation_triggered(contract: ContractData) -> bool:
    financials = contract.financials
    return (
        financials.total_value > 0
        or _has_text(financials.payment_schedule)
        or _has_text(financials.payment_method)
    )


def _compensation_paragraphs(contract: ContractData) -> Paragraphs:
    financials = contract.financials
    currency = _currency(contract)
    schedule = financials.payment_schedule.strip()
    paragraphs: List[Paragraph] = []

    schedule_sentence = (
        f"Payment shall be made according to the following schedule: {schedule}." if schedule else ""
    )
    if financials.total_value > 0:
        text = (
            "In consideration for the services rendered, Second Party shall pay First Party the total "
            f"amount of {format_currency(financials.total_value, currency)}."
        )
        if schedule_sentence:
            text += f" {schedule_sentence}"
        paragraphs.append(Paragraph(text))
    elif schedule_sentence:
        paragraphs.append(Paragraph(schedule_sentence))

    if _has_text(financials.payment_method):
        paragraphs.append(Paragraph(financials.payment_method.strip(), label="Payment Method"))
    if financials.retainer_amount > 0:
        paragraphs.append(
            Paragraph(
                f"{format_currency(financials.retainer_amount, currency)} shall be paid upon execution of this Agreement.",
                label="Retainer Amount",
            )
        )
    if financials.late_fee > 0:
        paragraphs.append(
            Paragraph(
                f"A late fee of {_percent(financials.late_fee)}% per month shall be charged on overdue payments.",
                label="Late Payment Fee",
            )
        )
    if financials.expense_reimbursement:
        paragraphs.append(Paragraph(EXPENSES_TEXT, label="Expenses"))
    if _has_text(financials.notes):
        paragraphs.append(Paragraph(financials.notes.strip(), label="Additional Financial Terms"))
    return tuple(paragraphs)


def _verbatim(getter: Callable[[ContractData], str]) -> Callable[[ContractData], Paragraphs]:
    def build(contract: ContractData) -> Paragraphs:
        return (Paragraph(getter(contract).strip()),)

    return build


def _filled(getter: Callable[[ContractData], str]) -> Callable[[ContractData], bool]:
    def trigger(contract: ContractData) -> bool:
        return _has_text(getter(contract))

    return trigger


def _governing_law(contract: ContractData) -> Paragraphs:
    jurisdiction = contract.legal.jurisdiction.strip()
    return (
        Paragraph(
            f"This Agreement shall be governed by and construed in accordance with the laws of {jurisdiction}."
        ),
    )


def _dispute_resolution(contract: ContractData) -> Paragraphs:
    venue = contract.legal.jurisdiction.strip() or "the jurisdiction specified herein"
    return (
        Paragraph(
            "Any disputes arising from this Agreement shall be resolved through binding arbitration in "
            "accordance with the rules of the American Arbitration Association. The arbitration shall "
            f"take place in {venue}."
        ),
    )


CONDITIONAL_RULES: Tuple[ClauseRule, ...] = (
    ClauseRule("compensation", "COMPENSATION", _compensation_triggered, _compensation_paragraphs),
    ClauseRule(
        "payment_terms",
        "PAYMENT TERMS",
        _filled(lambda c: c.details.payment_terms),
        _verbatim(lambda c: c.details.payment_terms),
    ),
    ClauseRule(
        "governing_law",
        "GOVERNING LAW",
        _filled(lambda c: c.legal.jurisdiction),
        _governing_law,
        business_only=True,
    ),
    ClauseRule(
        "dispute_resolution",
        "DISPUTE RESOLUTION",
        lambda c: c.legal.arbitration_clause is True,
        _dispute_resolution,
        business_only=True,
    ),
    ClauseRule(
        "force_majeure",
        "FORCE MAJEURE",
        lambda c: c.legal.force_majeure_clause is True,
        lambda c: (Paragraph(FORCE_MAJEURE_TEXT),),
        business_only=True,
    ),
    ClauseRule(
        "intellectual_property",
        "INTELLECTUAL PROPERTY",
        _filled(lambda c: c.legal.intellectual_property_clause),
        _verbatim(lambda c: c.legal.intellectual_property_clause),
        business_only=True,
    ),
    ClauseRule(
        "confidentiality",
        "CONFIDENTIALITY",
        _filled(lambda c: c.legal.non_disclosure_clause),
        _verbatim(lambda c: c.legal.non_disclosure_clause),
        business_only=True,
    ),
    ClauseRule(
        "non_compete",
        "NON-COMPETE AGREEMENT",
        _filled(lambda c: c.legal.non_compete_clause),
        _verbatim(lambda c: c.legal.non_compete_clause),
        business_only=True,
    ),
    ClauseRule(
        "warranty",
        "WARRANTY AND LIABILITY",
        _filled(lambda c: c.legal.warranty_clause),
        _verbatim(lambda c: c.legal.warranty_clause),
        business_only=True,
    ),
    ClauseRule(
        "termination",
        "TERMINATION",
        _filled(lambda c: c.details.termination_clause),
        _verbatim(lambda c: c.details.termination_clause),
    ),
    ClauseRule(
        "additional_terms",
        "ADDITIONAL TERMS",
        _filled(lambda c: c.details.additional_terms),
        _verbatim(lambda c: c.details.additional_terms),
    ),
)

LEGAL_RULE_KEYS = frozenset(rule.key for rule in CONDITIONAL_RULES if rule.business_only)


def applicable_rules(is_business_account: bool) -> Tuple[ClauseRule, ...]:
    if is_business_account:
        return CONDITIONAL_RULES
    return tuple(rule for rule in CONDITIONAL_RULES if not rule.business_only)


def suppressed_legal_keys(contract: ContractData) -> List[str]:
    """Legal rules whose data is filled in but which an individual account never renders."""
    return [rule.key for rule in CONDITIONAL_RULES if rule.business_only and rule.trigger(contract)]


def assemble(contract: ContractData, is_business_account: Optional[bool] = None) -> List[Section]:
    """Produce the numbered TERMS AND CONDITIONS sections for one render pass.

    Term and Scope are always 1 and 2, General Provisions is always last, and
    the conditional rules in between are numbered in table order only when
    they are emitted. Numbers come from each section's position in this
    call's output, so they are contiguous from 1 every time.
    """
    business = contract.is_business_account if is_business_account is None else bool(is_business_account)

    drafts: List[Tuple[str, str, Paragraphs, Tuple[Subsection, ...]]] = [
        ("term", "TERM OF AGREEMENT", _term_paragraphs(contract), ()),
        ("scope", "SCOPE OF WORK", _scope_paragraphs(contract), _scope_subsections(contract)),
    ]
    for rule in applicable_rules(business):
        if not rule.trigger(contract):
            continue
        paragraphs = rule.build(contract)
        if paragraphs:
            drafts.append((rule.key, rule.heading, paragraphs, ()))
    drafts.append(("general_provisions", "GENERAL PROVISIONS", (Paragraph(GENERAL_PROVISIONS_TEXT),), ()))

    sections = [
        Section(number=number, key=key, heading=heading, paragraphs=paragraphs, subsections=subsections)
        for number, (key, heading, paragraphs, subsections) in enumerate(drafts, start=1)
    ]
    logger.debug("Assembled %d sections: %s", len(sections), ", ".join(s.key for s in sections))
    return sections


__all__ = [
    "CONDITIONAL_RULES",
    "ClauseRule",
    "LEGAL_RULE_KEYS",
    "applicable_rules",
    "assemble",
    "format_list_items",
    "normalize_list_item",
    "suppressed_legal_keys",
]
