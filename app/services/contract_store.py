from __future__ import annotations

import copy
import datetime
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError

from models.schemas import SIGNATURE_RECORD_ADAPTER, ContractData, coerce_contract_data

from .formatting import safe_text

logger = logging.getLogger(__name__)

PARTIES: Tuple[str, ...] = ("party1", "party2")
_DEFAULT_SIGNER = {"party1": "First Party", "party2": "Second Party"}
_IMAGE_KINDS = ("draw", "upload")


def _empty_party() -> Dict[str, Any]:
    return {
        "name": "",
        "email": "",
        "address": "",
        "city": "",
        "state": "",
        "zipCode": "",
        "country": "",
        "companyName": "",
        "position": "",
        "phoneNumber": "",
        "registrationNumber": "",
        "logo": None,
    }


def new_draft(today: Optional[datetime.date] = None, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    """Initial record for a new contract: one-year term starting today."""
    today = today or datetime.date.today()
    now = now or datetime.datetime.now()
    return {
        "party1": _empty_party(),
        "party2": _empty_party(),
        "details": {
            "contractNumber": f"CNT-{int(now.timestamp() * 1000)}",
            "title": "",
            "contractType": "service_agreement",
            "startDate": today.isoformat(),
            "endDate": (today + datetime.timedelta(days=365)).isoformat(),
            "description": "",
            "paymentTerms": "",
            "terminationClause": "",
            "additionalTerms": "",
            "notes": "",
            "currency": "USD",
            "autoRenew": False,
            "renewalPeriod": 12,
        },
        "objectives": [],
        "deliverables": [],
        "milestones": [],
        "financials": {
            "totalValue": 0,
            "paymentSchedule": "",
            "currency": "USD",
            "paymentMethod": "",
            "lateFee": 0,
            "retainerAmount": 0,
            "expenseReimbursement": False,
            "notes": "",
        },
        "legal": {
            "jurisdiction": "",
            "arbitrationClause": False,
            "forceMajeureClause": False,
            "intellectualPropertyClause": "",
            "nonCompeteClause": "",
            "nonDisclosureClause": "",
            "warrantyClause": "",
            "privacyClause": "",
        },
        "approvals": {
            "party1Approval": False,
            "party2Approval": False,
            "party1ApprovedDate": None,
            "party2ApprovedDate": None,
            "party1Signature": None,
            "party2Signature": None,
        },
        "signatures": {"party1": None, "party2": None},
        "isBusinessAccount": False,
    }


def merge_patch(current: Mapping[str, Any], patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Last write wins: mapping values merge one level deep, everything else replaces."""
    merged = copy.deepcopy(dict(current))
    for key, value in patch.items():
        existing = merged.get(key)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            section = dict(existing)
            section.update(copy.deepcopy(dict(value)))
            merged[key] = section
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _check_party(party: str) -> None:
    if party not in PARTIES:
        raise ValueError(f"Unknown party: {party!r} (expected one of {', '.join(PARTIES)})")


class ContractStore:
    """Single source of truth for the draft being edited.

    Every edit rebuilds the raw record and returns a fresh ContractData
    snapshot; earlier snapshots are never modified.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None, is_business_account: Optional[bool] = None):
        self._raw: Dict[str, Any] = copy.deepcopy(dict(initial)) if initial is not None else new_draft()
        if is_business_account is not None:
            self._raw["isBusinessAccount"] = bool(is_business_account)
        self._snapshot = coerce_contract_data(self._raw)

    @property
    def raw(self) -> Dict[str, Any]:
        return copy.deepcopy(self._raw)

    def snapshot(self) -> ContractData:
        return self._snapshot

    def update(self, patch: Mapping[str, Any]) -> ContractData:
        self._raw = merge_patch(self._raw, patch)
        self._snapshot = coerce_contract_data(self._raw)
        return self._snapshot

    def set_account_tier(self, is_business_account: bool) -> ContractData:
        return self.update({"isBusinessAccount": bool(is_business_account)})

    # ----------------------------- signatures -----------------------------

    def add_signature(
        self,
        party: str,
        payload: str,
        kind: str = "type",
        font_family: str = "",
        timestamp: Optional[datetime.datetime] = None,
    ) -> ContractData:
        """Capture a signature for ``party``.

        ``kind`` is ``draw`` or ``upload`` (``payload`` is a data URL) or
        ``type`` (``payload`` is the typed name, shown in ``font_family``).

        Raises:
            ValueError: For an unknown party or kind, or an empty payload.
        """
        _check_party(party)
        signer = safe_text(self._raw.get(party, {}).get("name")).strip() or _DEFAULT_SIGNER[party]
        stamp = (timestamp or datetime.datetime.now(datetime.timezone.utc)).isoformat()

        if kind in _IMAGE_KINDS:
            record: Dict[str, Any] = {"type": kind, "imageData": payload}
        elif kind == "type":
            record = {"type": "type", "text": payload, "fontFamily": font_family}
        else:
            raise ValueError(f"Unsupported signature kind: {kind!r}")
        record.update({"timestamp": stamp, "signerName": signer})

        try:
            validated = SIGNATURE_RECORD_ADAPTER.validate_python(record)
        except ValidationError as exc:
            raise ValueError(f"Invalid {kind} signature for {party}: {exc.error_count()} error(s)") from exc

        logger.info("Signature captured for %s (%s)", party, kind)
        return self.update({"signatures": {party: validated.model_dump(by_alias=True)}})

    def remove_signature(self, party: str) -> ContractData:
        _check_party(party)
        return self.update({"signatures": {party: None}})

    def clear_signatures(self) -> ContractData:
        return self.update({"signatures": {party: None for party in PARTIES}})

    def get_signature(self, party: str) -> Any:
        _check_party(party)
        return getattr(self._snapshot.signatures, party)

    def all_parties_signed(self) -> bool:
        return all(self.get_signature(party) for party in PARTIES)

    def signing_progress(self) -> Tuple[int, int, float]:
        signed = sum(1 for party in PARTIES if self.get_signature(party))
        total = len(PARTIES)
        return signed, total, signed / total * 100


__all__ = ["PARTIES", "ContractStore", "merge_patch", "new_draft"]
