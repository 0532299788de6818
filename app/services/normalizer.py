import re
from decimal import Decimal, InvalidOperation

_MULTIPLIERS = {"k": Decimal(1_000), "m": Decimal(1_000_000), "b": Decimal(1_000_000_000)}


def normalize_amount(text: str) -> Decimal:
    """
    '$12,500.00' -> 12500.00, '12.5k' -> 12500, '1.2M USD' -> 1200000
    """
    t = (text or "").replace(",", "")
    m_scaled = re.search(r"(\d+(?:\.\d+)?)\s*(k|m|b)\b", t, re.IGNORECASE)
    if m_scaled:
        return Decimal(m_scaled.group(1)) * _MULTIPLIERS[m_scaled.group(2).lower()]
    m_plain = re.search(r"(\d+(?:\.\d+)?)", t)
    if m_plain:
        try:
            return Decimal(m_plain.group(1))
        except InvalidOperation:
            return Decimal(0)
    return Decimal(0)
