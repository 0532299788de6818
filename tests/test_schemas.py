import sys
from decimal import Decimal
from pathlib import Path

import pytest
from pydantic import ValidationError

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from models.schemas import (  # noqa: E402
    SIGNATURE_RECORD_ADAPTER,
    ContractData,
    ImageSignatureRecord,
    TypedSignatureRecord,
    coerce_contract_data,
)


def test_camel_and_snake_case_input_are_both_accepted():
    camel = coerce_contract_data({"details": {"contractNumber": "C-1"}, "isBusinessAccount": True})
    snake = coerce_contract_data({"details": {"contract_number": "C-1"}, "is_business_account": True})
    assert camel == snake
    assert camel.details.contract_number == "C-1"


def test_text_fields_never_hold_non_text():
    contract = coerce_contract_data({"party1": {"name": {"first": "Alex"}, "city": 42}})
    assert contract.party1.name == ""
    assert contract.party1.city == "42"


def test_amounts_become_decimals():
    contract = coerce_contract_data({"financials": {"totalValue": "12,500.50", "lateFee": None}})
    assert contract.financials.total_value == Decimal("12500.50")
    assert contract.financials.late_fee == Decimal(0)


def test_failing_nested_field_is_pruned_and_the_rest_survives():
    contract = coerce_contract_data(
        {
            "party1": {"name": "Alex", "logo": ["not", "a", "logo"]},
            "party2": "Riley Chen",
            "details": {"title": "Kept", "renewalPeriod": 3},
            "objectives": "not a list",
        }
    )
    assert contract.party1.name == "Alex"
    assert contract.details.title == "Kept"
    assert contract.details.renewal_period == 3
    assert contract.objectives == []
    assert contract.party1.logo is None
    assert contract.party2.name == ""


def test_non_mapping_input_yields_empty_contract():
    assert coerce_contract_data(None) == ContractData()
    assert coerce_contract_data(["a"]) == ContractData()


def test_contract_data_is_immutable():
    contract = ContractData()
    with pytest.raises(ValidationError):
        contract.is_business_account = True


def test_signature_records_are_discriminated_by_type():
    record = SIGNATURE_RECORD_ADAPTER.validate_python({"type": "type", "text": "Alex", "fontFamily": "Allura"})
    assert isinstance(record, TypedSignatureRecord)
    assert record.font_family == "Allura"

    with pytest.raises(ValidationError):
        SIGNATURE_RECORD_ADAPTER.validate_python({"type": "stamp", "text": "Alex"})


def test_signature_record_optional_text_is_coerced():
    record = SIGNATURE_RECORD_ADAPTER.validate_python(
        {"type": "draw", "imageData": "data:image/png;base64,AAAA", "timestamp": None, "signerName": 42}
    )
    assert isinstance(record, ImageSignatureRecord)
    assert record.timestamp == ""
    assert record.signer_name == "42"


@pytest.mark.parametrize("value", ["1e5000", 10**6, -3, 0, "twelve"])
def test_out_of_range_renewal_period_falls_back_to_twelve_months(value):
    contract = coerce_contract_data({"details": {"autoRenew": True, "renewalPeriod": value}})
    assert contract.details.renewal_period == 12


def test_renewal_period_upper_bound_is_kept():
    contract = coerce_contract_data({"details": {"renewalPeriod": 1200}})
    assert contract.details.renewal_period == 1200
