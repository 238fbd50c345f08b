"""Ciclo de vida del día de caja: crear/obtener, apertura, cierre y bitácora.

Reglas de concurrencia:
- Un solo día por (branch_id, date_key): lo garantiza la restricción única;
  si dos requests lo crean a la vez, el perdedor hace rollback y lee el del ganador.
- Toda escritura que exige día OPEN hace un UPDATE condicionado
  (WHERE status = 'OPEN') que además incrementa version_id.
- El cierre bloquea la fila (FOR UPDATE donde la DB lo soporta) y su UPDATE
  verifica version_id: si entró un movimiento después de calcular el esperado,
  el commit falla con StaleDataError y el cierre completo se reintenta.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from models.cash_day import CashDay, CashDayNote, CashDayNoteKind, CashDayStatus
from models.cash_movement import CashMovement
from services.cash_errors import (
    Conflict,
    Forbidden,
    InvalidAmount,
    InvalidInput,
    InvalidState,
    MissingCount,
    NotFound,
)
from services.cash_summary import build_summary, expected_cash
from services.money import as_decimal, to_money


logger = logging.getLogger(__name__)


class ActorRole:
    ADMIN = "ADMIN"
    OTHER = "OTHER"

    ALL = {ADMIN, OTHER}


def find_day(db: Session, *, branch_id: int, date_key: str, for_update: bool = False) -> Optional[CashDay]:
    q = db.query(CashDay).filter(CashDay.branch_id == branch_id, CashDay.date_key == date_key)
    if for_update:
        q = q.with_for_update().populate_existing()
    return q.one_or_none()


def get_day(db: Session, day_id: int) -> CashDay:
    day = db.get(CashDay, day_id)
    if day is None:
        raise NotFound("Día de caja inexistente", cashDayId=day_id)
    return day


def day_movements(db: Session, day_id: int) -> list[CashMovement]:
    return (
        db.query(CashMovement)
        .filter(CashMovement.cash_day_id == day_id)
        .order_by(CashMovement.id.asc())
        .all()
    )


def touch_open_day(db: Session, day_id: int, **values) -> None:
    """UPDATE condicionado a status OPEN, dentro de la transacción del llamador.

    Incrementa version_id para que un cierre en curso detecte el cambio.
    Si el día no existe o ya está cerrado, hace rollback y levanta el error.
    """
    result = db.execute(
        update(CashDay)
        .where(CashDay.id == day_id, CashDay.status == CashDayStatus.OPEN)
        .values(version_id=CashDay.version_id + 1, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        return

    db.rollback()
    day = db.get(CashDay, day_id)
    if day is None:
        raise NotFound("Día de caja inexistente", cashDayId=day_id)
    raise InvalidState("La caja está cerrada.", cashDayId=day_id, status=day.status)


def get_or_create_day(db: Session, *, branch_id: int, date_key: str) -> CashDay:
    day = find_day(db, branch_id=branch_id, date_key=date_key)
    if day:
        return day

    day = CashDay(
        branch_id=branch_id,
        date_key=date_key,
        status=CashDayStatus.OPEN,
        opening_cash=Decimal("0.00"),
        opened_at=datetime.utcnow(),
    )
    db.add(day)
    try:
        db.commit()
    except IntegrityError:
        # Otro request creó el mismo día primero: usamos el suyo
        db.rollback()
        day = find_day(db, branch_id=branch_id, date_key=date_key)
        if day is None:
            raise
        logger.info("Día de caja %s/%s creado por otro request, se reutiliza id=%s", branch_id, date_key, day.id)
        return day

    logger.info("Día de caja creado id=%s branch=%s date=%s", day.id, branch_id, date_key)
    return day


def set_opening_cash(db: Session, *, day_id: int, amount, actor_user_id: Optional[int] = None) -> CashDay:
    day = get_day(db, day_id)
    if not day.is_open:
        raise InvalidState("La caja está cerrada: no se puede cambiar el efectivo inicial.", cashDayId=day_id)

    value = to_money(amount, field="openingCash")
    if value is None or value < 0:
        raise InvalidAmount("El efectivo inicial debe ser un número >= 0", openingCash=amount)

    previous = as_decimal(day.opening_cash)
    if previous == value:
        return day

    touch_open_day(db, day_id, opening_cash=value)
    db.add(CashDayNote(
        cash_day_id=day_id,
        kind=CashDayNoteKind.OPENING,
        note=f"Efectivo inicial {previous} -> {value}",
        created_by_user_id=actor_user_id,
    ))
    db.commit()

    logger.info("Apertura actualizada day=%s %s -> %s", day_id, previous, value)
    return get_day(db, day_id)


def open_day(db: Session, *, branch_id: int, date_key: str, opening_cash, actor_user_id: Optional[int] = None) -> CashDay:
    day = get_or_create_day(db, branch_id=branch_id, date_key=date_key)
    return set_opening_cash(db, day_id=day.id, amount=opening_cash, actor_user_id=actor_user_id)


def compute_expected_cash(db: Session, day: CashDay) -> Decimal:
    return expected_cash(day.opening_cash, day_movements(db, day.id))


def day_summary(db: Session, day: CashDay, resolve_category=None, resolve_type=None) -> dict:
    return build_summary(day.opening_cash, day_movements(db, day.id), resolve_category, resolve_type)


def _same_close(day: CashDay, counted: Optional[Decimal]) -> bool:
    if day.counted_cash is None or counted is None:
        return day.counted_cash is None and counted is None
    return as_decimal(day.counted_cash) == counted


def close_day(
    db: Session,
    *,
    branch_id: int,
    date_key: str,
    counted_cash,
    admin_override: bool,
    note: Optional[str],
    actor_role: str,
    actor_user_id: Optional[int] = None,
    max_retries: int = 3,
) -> CashDay:
    """Cierra el día: calcula esperado, guarda contado y diferencia, pasa a CLOSED.

    - override solo para ADMIN (se valida antes que cualquier otra cosa).
    - sin override, el contado es obligatorio; con override puede faltar y el día
      queda cerrado sin conciliar (diff_cash NULL).
    - si el día ya está cerrado con el mismo contado, devuelve el estado guardado
      (reintento de un cliente que no recibió la respuesta).
    """
    admin_override = bool(admin_override)
    if admin_override and actor_role != ActorRole.ADMIN:
        raise Forbidden("Solo ADMIN puede usar override.", actorRole=actor_role)

    counted = to_money(counted_cash, field="countedCash")
    if counted is not None and counted < 0:
        raise InvalidAmount("El contado debe ser >= 0", countedCash=counted_cash)
    if counted is None and not admin_override:
        raise MissingCount("Ingresá el efectivo contado (>= 0) o activá override admin.")

    note = (note or "").strip() or None

    for attempt in range(1, max_retries + 1):
        day = find_day(db, branch_id=branch_id, date_key=date_key, for_update=True)
        if day is None:
            raise NotFound("No hay caja para ese día", branchId=branch_id, dateKey=date_key)

        if not day.is_open:
            if _same_close(day, counted):
                db.rollback()
                logger.info("Cierre repetido day=%s, se devuelve el estado cerrado", day.id)
                return day
            raise InvalidState("La caja ya está cerrada.", cashDayId=day.id)

        expected = expected_cash(day.opening_cash, day_movements(db, day.id))

        day.status = CashDayStatus.CLOSED
        day.closed_at = datetime.utcnow()
        day.counted_cash = counted
        day.diff_cash = (counted - expected) if counted is not None else None
        day.admin_override = admin_override
        day.close_note = note
        day.closed_by_user_id = actor_user_id
        db.add(CashDayNote(
            cash_day_id=day.id,
            kind=CashDayNoteKind.CLOSE,
            note=note,
            created_by_user_id=actor_user_id,
        ))

        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning(
                "Cierre day=%s en conflicto con otra escritura (intento %s/%s), se reintenta",
                day.id, attempt, max_retries,
            )
            continue

        logger.info(
            "Caja cerrada day=%s esperado=%s contado=%s diferencia=%s override=%s",
            day.id, expected, counted, day.diff_cash, admin_override,
        )
        return day

    raise Conflict("La caja cambió mientras se cerraba. Intentá de nuevo.", branchId=branch_id, dateKey=date_key)


def annotate_day(db: Session, *, day_id: int, note: str, actor_role: str, actor_user_id: Optional[int] = None) -> CashDayNote:
    """Anotación administrativa: única escritura permitida sobre un día cerrado."""
    if actor_role != ActorRole.ADMIN:
        raise Forbidden("Solo ADMIN puede anotar la caja.", actorRole=actor_role)

    text = (note or "").strip()
    if not text:
        raise InvalidInput("La nota es obligatoria.")

    get_day(db, day_id)
    entry = CashDayNote(
        cash_day_id=day_id,
        kind=CashDayNoteKind.ANNOTATION,
        note=text,
        created_by_user_id=actor_user_id,
    )
    db.add(entry)
    db.commit()
    return entry


def list_day_notes(db: Session, *, day_id: int) -> list[CashDayNote]:
    get_day(db, day_id)
    return (
        db.query(CashDayNote)
        .filter(CashDayNote.cash_day_id == day_id)
        .order_by(CashDayNote.id.asc())
        .all()
    )
