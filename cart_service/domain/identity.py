# cart_service/domain/identity.py
"""
Boundary coercion for identities and quantities.

Product identities are opaque strings. Integers coming from older clients
are converted with ``str()`` so ``5`` and ``"5"`` name the same product;
no other normalisation happens (``"007"`` stays ``"007"``).
"""
import re
from typing import Any, Optional

from cart_service.domain.errors import InvalidRequest

_INVISIBLE = ("\u200b", "\u200c", "\u200d", "\ufeff", "\xa0")
_DIGITS = re.compile(r"^\+?[0-9]+$")
#largest value a BSON int64 can hold
MAX_QUANTITY = 2**63 - 1


def _clean(value: str) -> str:
    v = value.strip()
    for ch in _INVISIBLE:
        v = v.replace(ch, "")
    return v


def product_identity(value: Any) -> Optional[str]:
    """Canonical product identity, or None when the value is missing/unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return _clean(value) or None
    return None


def user_identity(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def parse_quantity(value: Any) -> int:
    """Parse a positive integer quantity or raise InvalidRequest."""
    qty = None
    if isinstance(value, bool):
        pass
    elif isinstance(value, int):
        qty = value
    elif isinstance(value, float) and value.is_integer():
        qty = int(value)
    elif isinstance(value, str) and _DIGITS.match(value.strip()):
        digits = value.strip().lstrip("+").lstrip("0") or "0"
        #int() refuses very long digit strings, anything past 19 digits is over the cap anyway
        qty = int(digits) if len(digits) <= 19 else MAX_QUANTITY + 1

    if qty is None:
        raise InvalidRequest(f"Quantity must be an integer, got {value!r}")
    if qty < 1:
        raise InvalidRequest("Quantity must be at least 1")
    if qty > MAX_QUANTITY:
        raise InvalidRequest(f"Quantity must not exceed {MAX_QUANTITY}")
    return qty
