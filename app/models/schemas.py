from __future__ import annotations

import copy
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Sequence, Union, cast

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from services.formatting import safe_text, to_decimal

LIST_SECTIONS = ("objectives", "deliverables", "milestones")
MAX_COERCE_ATTEMPTS = 8
MAX_RENEWAL_MONTHS = 1200


class _CamelModel(BaseModel):
    """camelCase input, snake_case attributes, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class _Record(_CamelModel):
    """Base for form records; every ``str`` field is coerced through ``safe_text``."""

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text_fields(cls, value: Any, info: ValidationInfo) -> Any:
        field = cls.model_fields.get(info.field_name or "")
        if field is not None and field.annotation is str:
            return safe_text(value)
        return value


class Party(_Record):
    name: str = Field("", title="Full name")
    email: str = Field("", title="Email")
    address: str = Field("", title="Street address")
    city: str = ""
    state: str = ""
    zip_code: str = Field("", title="ZIP / postal code")
    country: str = ""
    company_name: str = Field("", title="Company")
    position: str = Field("", title="Position")
    phone_number: str = ""
    registration_number: str = ""
    logo: Optional[str] = None

    @field_validator("logo", mode="before")
    @classmethod
    def _logo_as_text(cls, value: Any) -> Optional[str]:
        text = safe_text(value)
        return text or None


class ContractDetails(_Record):
    contract_number: str = ""
    title: str = ""
    contract_type: str = "other"
    start_date: str = ""
    end_date: str = ""
    description: str = ""
    payment_terms: str = ""
    termination_clause: str = ""
    additional_terms: str = ""
    notes: str = ""
    currency: str = "USD"
    auto_renew: bool = False
    renewal_period: int = 12

    @field_validator("contract_type", mode="after")
    @classmethod
    def _default_type(cls, value: str) -> str:
        return value.strip() or "other"

    @field_validator("auto_renew", mode="before")
    @classmethod
    def _strict_auto_renew(cls, value: Any) -> bool:
        return value is True

    @field_validator("renewal_period", mode="before")
    @classmethod
    def _renewal_months(cls, value: Any) -> int:
        months = int(to_decimal(value))
        return months if 0 < months <= MAX_RENEWAL_MONTHS else 12


class Financials(_Record):
    total_value: Decimal = Decimal(0)
    payment_schedule: str = ""
    currency: str = ""
    payment_method: str = ""
    late_fee: Decimal = Decimal(0)
    retainer_amount: Decimal = Decimal(0)
    expense_reimbursement: bool = False
    notes: str = ""

    @field_validator("total_value", "late_fee", "retainer_amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("expense_reimbursement", mode="before")
    @classmethod
    def _strict_reimbursement(cls, value: Any) -> bool:
        return value is True


class LegalClauses(_Record):
    jurisdiction: str = ""
    arbitration_clause: bool = False
    force_majeure_clause: bool = False
    intellectual_property_clause: str = ""
    non_compete_clause: str = ""
    non_disclosure_clause: str = ""
    warranty_clause: str = ""
    privacy_clause: str = ""

    @field_validator("arbitration_clause", "force_majeure_clause", mode="before")
    @classmethod
    def _strict_flag(cls, value: Any) -> bool:
        # Only a real boolean true turns a clause on; "true", 1, "yes" do not.
        return value is True


class Approvals(_Record):
    party1_approval: bool = False
    party2_approval: bool = False
    party1_approved_date: Optional[str] = None
    party2_approved_date: Optional[str] = None
    party1_signature: Any = None
    party2_signature: Any = None

    @field_validator("party1_approval", "party2_approval", mode="before")
    @classmethod
    def _strict_approval(cls, value: Any) -> bool:
        return value is True

    @field_validator("party1_approved_date", "party2_approved_date", mode="before")
    @classmethod
    def _date_text(cls, value: Any) -> Optional[str]:
        text = safe_text(value)
        return text or None


class _SignatureRecordBase(_CamelModel):
    # The ``type`` discriminator must not carry a before-validator.
    timestamp: str = ""
    signer_name: str = ""

    @field_validator("timestamp", "signer_name", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str:
        return safe_text(value)


class ImageSignatureRecord(_SignatureRecordBase):
    type: Literal["draw", "upload"]
    image_data: str = Field(..., min_length=1)


class TypedSignatureRecord(_SignatureRecordBase):
    type: Literal["type"]
    text: str = Field(..., min_length=1)
    font_family: str = ""

    @field_validator("font_family", mode="before")
    @classmethod
    def _font_text(cls, value: Any) -> str:
        return safe_text(value)


SignatureRecord = Annotated[
    Union[ImageSignatureRecord, TypedSignatureRecord],
    Field(discriminator="type"),
]
SIGNATURE_RECORD_ADAPTER: TypeAdapter[Union[ImageSignatureRecord, TypedSignatureRecord]] = TypeAdapter(
    SignatureRecord
)


class Signatures(_Record):
    # None, a legacy string, or a SignatureRecord mapping; normalized at render time.
    party1: Any = None
    party2: Any = None


class ContractData(_Record):
    party1: Party = Field(default_factory=Party)
    party2: Party = Field(default_factory=Party)
    details: ContractDetails = Field(default_factory=ContractDetails)
    objectives: List[Any] = Field(default_factory=list)
    deliverables: List[Any] = Field(default_factory=list)
    milestones: List[Any] = Field(default_factory=list)
    financials: Financials = Field(default_factory=Financials)
    legal: LegalClauses = Field(default_factory=LegalClauses)
    approvals: Approvals = Field(default_factory=Approvals)
    signatures: Signatures = Field(default_factory=Signatures)
    is_business_account: bool = False

    @model_validator(mode="before")
    @classmethod
    def _lift_legacy_lists(cls, data: Any) -> Any:
        """Older drafts keep objectives/deliverables/milestones under ``details``."""
        if not isinstance(data, Mapping):
            return data
        details = data.get("details")
        if not isinstance(details, Mapping):
            return data
        lifted = dict(data)
        for key in LIST_SECTIONS:
            if lifted.get(key):
                continue
            legacy = details.get(key)
            if isinstance(legacy, (list, tuple)) and legacy:
                lifted[key] = list(legacy)
        return lifted

    @field_validator(*LIST_SECTIONS, mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> List[Any]:
        if isinstance(value, (list, tuple)):
            return list(value)
        return []

    @field_validator("is_business_account", mode="before")
    @classmethod
    def _strict_tier(cls, value: Any) -> bool:
        return value is True


def _matching_key(node: Dict[str, Any], key: str) -> Optional[str]:
    # Error locations use the camelCase alias; the payload may use either spelling.
    if key in node:
        return key
    for candidate in node:
        if isinstance(candidate, str) and to_camel(candidate) == key:
            return candidate
    return None


def _prune(payload: Dict[str, Any], loc: Sequence[object]) -> bool:
    """Remove the value at ``loc`` from a nested payload. Returns True when removed."""
    node: Any = payload
    for key in loc[:-1]:
        if isinstance(node, dict) and isinstance(key, str):
            matched = _matching_key(node, key)
            if matched is None:
                return False
            node = node[matched]
        elif isinstance(node, list) and isinstance(key, int) and 0 <= key < len(node):
            node = node[key]
        else:
            return False
    leaf = loc[-1] if loc else None
    if isinstance(node, dict) and isinstance(leaf, str):
        matched = _matching_key(node, leaf)
        if matched is None:
            return False
        node.pop(matched)
        return True
    if isinstance(node, list) and isinstance(leaf, int) and 0 <= leaf < len(node):
        node.pop(leaf)
        return True
    return False


def coerce_contract_data(raw: Any) -> ContractData:
    """Build a ContractData snapshot, dropping whatever fields fail validation."""
    if isinstance(raw, ContractData):
        return raw
    if not isinstance(raw, Mapping):
        return ContractData()

    cleaned: Dict[str, Any] = copy.deepcopy(dict(raw))
    for _ in range(MAX_COERCE_ATTEMPTS):
        try:
            return ContractData.model_validate(cleaned)
        except ValidationError as exc:
            removed = False
            for error in exc.errors():
                raw_loc = error.get("loc")
                loc: Sequence[object] = (
                    cast(Sequence[object], raw_loc) if isinstance(raw_loc, (list, tuple)) else []
                )
                if loc and _prune(cleaned, loc):
                    removed = True
            if not removed:
                break
    return ContractData()


class ExtractedFields(BaseModel):
    """Fields pulled from an uploaded contract to prefill a draft."""

    model_config = ConfigDict(extra="ignore")

    client_name: Optional[str] = Field(None, title="Client name")
    start_date: Optional[str] = Field(None, title="Start date")
    end_date: Optional[str] = Field(None, title="End date")
    amount: Optional[str] = Field(None, title="Contract amount")
    billing_cycle: Optional[str] = Field(None, title="Billing cycle")
    auto_renew: bool = Field(False, title="Auto renew")
    terms: Optional[str] = Field(None, title="Payment terms")

    @field_validator("auto_renew", mode="before")
    @classmethod
    def _auto_renew_flag(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return value is True
