from datetime import datetime
from decimal import Decimal, InvalidOperation

from services.cash_errors import InvalidAmount, InvalidInput


CENTS = Decimal("0.01")
# Numeric(12,2): hasta 10 dígitos enteros
MONEY_LIMIT = Decimal("1e10")


def to_money(val, *, field: str = "amount"):
    """
    Soporta números JSON o strings con coma/punto. Devuelve Decimal(12,2).
    None / "" => None (el llamador decide si es obligatorio).
    """
    if val is None:
        return None
    if isinstance(val, bool):
        raise InvalidAmount(f"{field} inválido", field=field)
    s = str(val).strip().replace(",", ".")
    if s == "":
        return None
    try:
        d = Decimal(s)
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"{field} inválido", field=field)
    if not d.is_finite():
        raise InvalidAmount(f"{field} inválido", field=field)
    try:
        d = d.quantize(CENTS)
    except InvalidOperation:
        raise InvalidAmount(f"{field} fuera de rango", field=field)
    if abs(d) >= MONEY_LIMIT:
        raise InvalidAmount(f"{field} fuera de rango", field=field)
    return d


def as_decimal(v) -> Decimal:
    """Numeric de la DB (Decimal, float de SQLite o None) -> Decimal con 2 decimales."""
    if v is None:
        return Decimal("0.00")
    return Decimal(str(v)).quantize(CENTS)


def validate_date_key(v) -> str:
    s = (v or "").strip() if isinstance(v, str) else ""
    try:
        return datetime.strptime(s, "%Y-%m-%d").strftime("%Y-%m-%d")
    except ValueError:
        raise InvalidInput("dateKey debe tener formato YYYY-MM-DD", dateKey=v)
