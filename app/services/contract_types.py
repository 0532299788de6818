from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from .formatting import safe_text

MAPPING_PATH = Path(__file__).resolve().parents[1] / "mappings" / "contract_types.yaml"
DEFAULT_TYPE_DISPLAY = "CONTRACT AGREEMENT"
DEFAULT_TYPE_CODE = "other"


@dataclass(frozen=True)
class ContractType:
    code: str
    label: str
    display: str
    category: str
    business: bool
    storage: str


@lru_cache(maxsize=1)
def load_contract_types() -> Dict[str, ContractType]:
    """Read the static contract type table once per process."""
    with MAPPING_PATH.open("r", encoding="utf-8") as f_yaml:
        cfg = yaml.safe_load(f_yaml) or {}

    raw_types: Dict[str, Any] = cfg.get("types", {})
    if not raw_types:
        raise ValueError(f"No contract types defined in {MAPPING_PATH}")

    default_display = str(cfg.get("default_display") or DEFAULT_TYPE_DISPLAY)
    table: Dict[str, ContractType] = {}
    for code, entry in raw_types.items():
        entry = entry or {}
        table[str(code)] = ContractType(
            code=str(code),
            label=str(entry.get("label") or code),
            display=str(entry.get("display") or default_display),
            category=str(entry.get("category") or "Custom"),
            business=bool(entry.get("business", False)),
            storage=str(entry.get("storage") or DEFAULT_TYPE_CODE),
        )
    return table


def contract_type_display(code: Any) -> str:
    """Heading for the title block; unknown codes get the generic label."""
    entry = load_contract_types().get(safe_text(code).strip())
    if entry is None:
        return DEFAULT_TYPE_DISPLAY
    return entry.display


def storage_type(code: Any) -> Tuple[str, bool]:
    """Map a form code to the type the contracts API stores, plus whether it was remapped."""
    requested = safe_text(code).strip()
    entry = load_contract_types().get(requested)
    if entry is None:
        return DEFAULT_TYPE_CODE, True
    return entry.storage, entry.storage != requested


def available_types(is_business_account: bool) -> List[ContractType]:
    """Types offered in the form; business-only types are hidden from individual accounts."""
    return [
        entry for entry in load_contract_types().values() if is_business_account or not entry.business
    ]


__all__ = [
    "ContractType",
    "DEFAULT_TYPE_DISPLAY",
    "available_types",
    "contract_type_display",
    "load_contract_types",
    "storage_type",
]
