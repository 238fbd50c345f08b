"""Resumen de caja (totales, por método, por categoría).

Funciones puras sobre los movimientos de un día: no escriben nada y, dado el
mismo conjunto de movimientos, siempre devuelven lo mismo. Los movimientos
anulados se excluyen (no se restan).
"""

import logging
from decimal import Decimal
from typing import Callable, Iterable, Optional

from models.cash_movement import CashMethod, CashMoveType
from services.money import as_decimal


logger = logging.getLogger(__name__)

UNCATEGORIZED_NAME = "Sin categoría"

CategoryResolver = Callable[[str], Optional[str]]


def _active(movements: Iterable) -> list:
    return [m for m in movements if not m.voided]


def _bucket() -> dict:
    return {
        "income": Decimal("0.00"),
        "expense": Decimal("0.00"),
        "countIncome": 0,
        "countExpense": 0,
    }


def _add(bucket: dict, m) -> None:
    amount = as_decimal(m.amount)
    if m.move_type == CashMoveType.INCOME:
        bucket["income"] += amount
        bucket["countIncome"] += 1
    else:
        bucket["expense"] += amount
        bucket["countExpense"] += 1


def _close(bucket: dict) -> dict:
    bucket["net"] = bucket["income"] - bucket["expense"]
    return bucket


def cash_totals(movements: Iterable) -> tuple[Decimal, Decimal]:
    """(ingresos, egresos) en efectivo de los movimientos no anulados."""
    income = Decimal("0.00")
    expense = Decimal("0.00")
    for m in _active(movements):
        if m.method != CashMethod.CASH:
            continue
        if m.move_type == CashMoveType.INCOME:
            income += as_decimal(m.amount)
        else:
            expense += as_decimal(m.amount)
    return income, expense


def expected_cash(opening_cash, movements: Iterable) -> Decimal:
    income, expense = cash_totals(movements)
    return as_decimal(opening_cash) + income - expense


def _resolve_name(resolver: Optional[CategoryResolver], category_id: str) -> str:
    if resolver is None:
        return category_id
    try:
        name = resolver(category_id)
    except Exception:
        # El directorio es solo para mostrar; nunca bloquea el resumen
        logger.warning("No se pudo resolver la categoría %s, se usa el id", category_id, exc_info=True)
        return category_id
    return name or category_id


def _resolve_type(resolver: Optional[CategoryResolver], category_id: str) -> Optional[str]:
    if resolver is None:
        return None
    try:
        return resolver(category_id)
    except Exception:
        logger.warning("No se pudo resolver el tipo de la categoría %s", category_id, exc_info=True)
        return None



def build_summary(
    opening_cash,
    movements: Iterable,
    resolve_category: Optional[CategoryResolver] = None,
    resolve_type: Optional[CategoryResolver] = None,
) -> dict:
    """Totales, por método y por categoría.

    byCategory incluye un bucket para movimientos sin categoría (categoryId None).
    Los nombres se resuelven con ``resolve_category``; si falla o no encuentra la
    categoría, se usa el id tal cual. El tipo (``resolve_type``) cae a None.
    """
    active = _active(movements)

    totals = _bucket()
    by_method: dict[str, dict] = {}
    by_category: dict[Optional[str], dict] = {}

    for m in active:
        _add(totals, m)
        _add(by_method.setdefault(m.method, _bucket()), m)
        _add(by_category.setdefault(m.category_id or None, _bucket()), m)

    cash_in, cash_out = cash_totals(active)

    methods = []
    for method in sorted(by_method, key=_method_rank):
        row = _close(by_method[method])
        methods.append({"method": method, **row})

    categories = []
    # Sin categoría al final, el resto por id (estable)
    for category_id in sorted(by_category, key=lambda c: (c is None, c or "")):
        row = _close(by_category[category_id])
        if category_id is None:
            name, category_type = UNCATEGORIZED_NAME, None
        else:
            name = _resolve_name(resolve_category, category_id)
            category_type = _resolve_type(resolve_type, category_id)
        categories.append({"categoryId": category_id, "name": name, "type": category_type, **row})

    totals = _close(totals)
    return {
        "totals": {
            "income": totals["income"],
            "expense": totals["expense"],
            "net": totals["net"],
            "cashNet": cash_in - cash_out,
        },
        "byMethod": methods,
        "byCategory": categories,
        "expectedCash": as_decimal(opening_cash) + cash_in - cash_out,
    }


def _method_rank(method: str):
    try:
        return (CashMethod.ORDER.index(method), method)
    except ValueError:
        return (len(CashMethod.ORDER), method)


def summary_to_json(summary: dict) -> dict:
    """Decimal -> float para la respuesta JSON."""

    def _row(row: dict) -> dict:
        return {k: (float(v) if isinstance(v, Decimal) else v) for k, v in row.items()}

    return {
        "totals": _row(summary["totals"]),
        "byMethod": [_row(r) for r in summary["byMethod"]],
        "byCategory": [_row(r) for r in summary["byCategory"]],
    }
