"""Carreras reales contra SQLite en archivo (una conexión por hilo)."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

from models import db
from models.cash_day import CashDay, CashDayStatus
from models.cash_movement import CashMethod, CashMovement, CashMoveType
from services.cash_days import ActorRole, close_day, get_or_create_day, set_opening_cash
from services.cash_errors import InvalidState
from services.cash_movements import create_movement
from tests.conftest import DATE_KEY, seed_branch_and_users


WORKERS = 8


def test_concurrent_get_or_create_yields_one_day(file_app):
    with file_app.app_context():
        branch_id = seed_branch_and_users()["branch_id"]

    barrier = Barrier(WORKERS)

    def worker(_):
        with file_app.app_context():
            barrier.wait()
            day = get_or_create_day(db.session, branch_id=branch_id, date_key=DATE_KEY)
            day_id = day.id
            db.session.remove()
            return day_id

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        ids = list(pool.map(worker, range(WORKERS)))

    assert len(set(ids)) == 1
    with file_app.app_context():
        assert db.session.query(CashDay).count() == 1


def test_movements_racing_close_are_either_included_or_rejected(file_app):
    with file_app.app_context():
        branch_id = seed_branch_and_users()["branch_id"]
        day = get_or_create_day(db.session, branch_id=branch_id, date_key=DATE_KEY)
        day_id = day.id
        set_opening_cash(db.session, day_id=day_id, amount=1000)
        db.session.remove()

    barrier = Barrier(WORKERS + 1)

    def add_income(_):
        with file_app.app_context():
            barrier.wait()
            try:
                create_movement(
                    db.session,
                    day_id=day_id,
                    move_type=CashMoveType.INCOME,
                    method=CashMethod.CASH,
                    amount=10,
                    concept="venta",
                )
                return "ok"
            except InvalidState:
                return "rejected"
            finally:
                db.session.remove()

    def close(_):
        with file_app.app_context():
            barrier.wait()
            try:
                return close_day(
                    db.session,
                    branch_id=branch_id,
                    date_key=DATE_KEY,
                    counted_cash=1000,
                    admin_override=False,
                    note=None,
                    actor_role=ActorRole.OTHER,
                    max_retries=WORKERS + 2,
                ).id
            finally:
                db.session.remove()

    with ThreadPoolExecutor(max_workers=WORKERS + 1) as pool:
        close_future = pool.submit(close, None)
        results = list(pool.map(add_income, range(WORKERS)))
        close_future.result()

    with file_app.app_context():
        day = db.session.get(CashDay, day_id)
        accepted = db.session.query(CashMovement).filter(CashMovement.cash_day_id == day_id).count()

        assert day.status == CashDayStatus.CLOSED
        assert accepted == results.count("ok")
        # El diff refleja exactamente los movimientos que quedaron dentro del día
        assert day.diff_cash == Decimal("1000") - (Decimal("1000") + Decimal("10") * accepted)
