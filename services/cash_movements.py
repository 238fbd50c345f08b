import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from models.cash_movement import CashMethod, CashMovement, CashMoveType
from services.cash_days import get_day, touch_open_day
from services.cash_errors import AlreadyVoided, InvalidAmount, InvalidInput, InvalidState, MissingConcept, NotFound
from services.money import to_money


logger = logging.getLogger(__name__)

CONCEPT_MAX = 160
CATEGORY_ID_MAX = 64


def _clean_str(v) -> str:
    return (str(v) if v is not None else "").strip()


def list_movements(db: Session, *, day_id: int) -> list[CashMovement]:
    """Todos los movimientos del día (incluye anulados, para auditoría)."""
    get_day(db, day_id)
    return (
        db.query(CashMovement)
        .filter(CashMovement.cash_day_id == day_id)
        .order_by(CashMovement.id.desc())
        .all()
    )


def create_movement(
    db: Session,
    *,
    day_id: int,
    move_type: str,
    method: str,
    amount,
    concept: str,
    category_id: Optional[str] = None,
    note: Optional[str] = None,
    created_by_user_id: Optional[int] = None,
) -> CashMovement:
    """
    Registra un ingreso/egreso en un día OPEN.
    No toca los campos del día (todo se recalcula desde los movimientos).
    """
    day = get_day(db, day_id)
    if not day.is_open:
        raise InvalidState("La caja está cerrada.", cashDayId=day_id)

    move_type = _clean_str(move_type).upper()
    if move_type not in CashMoveType.ALL:
        raise InvalidInput("type inválido", type=move_type)

    method = _clean_str(method).upper()
    if method not in CashMethod.ALL:
        raise InvalidInput("method inválido", method=method)

    value = to_money(amount)
    if value is None or value <= 0:
        raise InvalidAmount("El monto debe ser mayor a 0.", amount=amount)

    concept = _clean_str(concept)
    if not concept:
        raise MissingConcept("Ingresá un concepto.")
    if len(concept) > CONCEPT_MAX:
        raise InvalidInput(f"El concepto no puede superar {CONCEPT_MAX} caracteres.")

    category_id = _clean_str(category_id) or None
    if category_id and len(category_id) > CATEGORY_ID_MAX:
        raise InvalidInput(f"categoryId no puede superar {CATEGORY_ID_MAX} caracteres.", categoryId=category_id)
    note = _clean_str(note) or None

    # El estado se vuelve a verificar dentro de la transacción: si un cierre
    # ganó la carrera, esto falla con InvalidState en vez de colarse en el día.
    touch_open_day(db, day_id)

    m = CashMovement(
        cash_day_id=day_id,
        move_type=move_type,
        method=method,
        amount=value,
        category_id=category_id,
        concept=concept,
        note=note,
        created_at=datetime.utcnow(),
        created_by_user_id=created_by_user_id,
    )
    db.add(m)
    db.commit()

    logger.info("Movimiento %s creado day=%s %s/%s %s", m.id, day_id, move_type, method, value)
    return m


def void_movement(
    db: Session,
    *,
    movement_id: int,
    reason: Optional[str] = None,
    actor_user_id: Optional[int] = None,
) -> CashMovement:
    """Anula un movimiento (una sola vez). Solo cambia voided / void_reason / voided_at."""
    m = db.get(CashMovement, movement_id)
    if m is None:
        raise NotFound("Movimiento inexistente", movementId=movement_id)
    if m.voided:
        raise AlreadyVoided("El movimiento ya está anulado.", movementId=movement_id)

    day_id = m.cash_day_id
    touch_open_day(db, day_id)

    result = db.execute(
        update(CashMovement)
        .where(CashMovement.id == movement_id, CashMovement.voided.is_(False))
        .values(
            voided=True,
            void_reason=_clean_str(reason) or None,
            voided_at=datetime.utcnow(),
            voided_by_user_id=actor_user_id,
        )
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.rollback()
        raise AlreadyVoided("El movimiento ya está anulado.", movementId=movement_id)

    db.commit()
    logger.info("Movimiento %s anulado day=%s", movement_id, day_id)
    return db.get(CashMovement, movement_id)
