from decimal import Decimal

import pytest

from models import db
from models.cash_day import CashDay, CashDayNoteKind, CashDayStatus
from models.cash_movement import CashMethod, CashMoveType
from services.cash_days import (
    ActorRole,
    annotate_day,
    close_day,
    compute_expected_cash,
    get_or_create_day,
    list_day_notes,
    open_day,
    set_opening_cash,
)
from services.cash_errors import Forbidden, InvalidAmount, InvalidInput, InvalidState, MissingCount, NotFound
from services.cash_movements import create_movement, void_movement
from tests.conftest import DATE_KEY


def _close(seeded, **kwargs):
    args = dict(
        branch_id=seeded["branch_id"],
        date_key=DATE_KEY,
        counted_cash=None,
        admin_override=False,
        note=None,
        actor_role=ActorRole.OTHER,
    )
    args.update(kwargs)
    return close_day(db.session, **args)


def _record(day_id, move_type, method, amount, concept="mov"):
    return create_movement(
        db.session,
        day_id=day_id,
        move_type=move_type,
        method=method,
        amount=amount,
        concept=concept,
    )


def test_get_or_create_is_idempotent(ctx, seeded):
    first = get_or_create_day(db.session, branch_id=seeded["branch_id"], date_key=DATE_KEY)
    second = get_or_create_day(db.session, branch_id=seeded["branch_id"], date_key=DATE_KEY)

    assert first.id == second.id
    assert first.status == CashDayStatus.OPEN
    assert first.opening_cash == 0
    assert first.opened_at is not None
    assert db.session.query(CashDay).count() == 1


def test_get_or_create_is_scoped_by_branch(ctx, seeded):
    a = get_or_create_day(db.session, branch_id=seeded["branch_id"], date_key=DATE_KEY)
    b = get_or_create_day(db.session, branch_id=seeded["other_branch_id"], date_key=DATE_KEY)
    assert a.id != b.id


def test_get_or_create_recovers_from_insert_conflict(ctx, seeded, monkeypatch):
    """Si otro request insertó el día entre la búsqueda y el insert, se usa el existente."""
    existing = get_or_create_day(db.session, branch_id=seeded["branch_id"], date_key=DATE_KEY)
    existing_id = existing.id

    import services.cash_days as cash_days

    real_find = cash_days.find_day
    calls = {"n": 0}

    def find_misses_once(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(*args, **kwargs)

    monkeypatch.setattr(cash_days, "find_day", find_misses_once)

    day = cash_days.get_or_create_day(db.session, branch_id=seeded["branch_id"], date_key=DATE_KEY)
    assert day.id == existing_id
    assert db.session.query(CashDay).count() == 1


def test_set_opening_cash_overwrites_and_records_note(ctx, seeded):
    day = get_or_create_day(db.session, branch_id=seeded["branch_id"], date_key=DATE_KEY)

    day = set_opening_cash(db.session, day_id=day.id, amount="10000", actor_user_id=seeded["admin_id"])
    assert day.opening_cash == Decimal("10000")

    # mismo valor => no-op (sin nueva nota)
    set_opening_cash(db.session, day_id=day.id, amount=10000)
    notes = list_day_notes(db.session, day_id=day.id)
    assert [n.kind for n in notes] == [CashDayNoteKind.OPENING]


def test_set_opening_cash_rejects_negative(ctx, day_id):
    with pytest.raises(InvalidAmount):
        set_opening_cash(db.session, day_id=day_id, amount=-1)


@pytest.mark.parametrize("amount", ["1e40", 1e12])
def test_set_opening_cash_rejects_out_of_range(ctx, day_id, amount):
    with pytest.raises(InvalidAmount):
        set_opening_cash(db.session, day_id=day_id, amount=amount)
    assert db.session.get(CashDay, day_id).opening_cash == Decimal("10000")


def test_open_day_creates_and_sets_opening(ctx, seeded):
    day = open_day(db.session, branch_id=seeded["branch_id"], date_key="2026-10-18", opening_cash="2500,50")
    assert day.date_key == "2026-10-18"
    assert day.opening_cash == Decimal("2500.50")


def test_close_happy_path_zero_diff(ctx, seeded, day_id):
    _record(day_id, CashMoveType.INCOME, CashMethod.CASH, 5000)
    _record(day_id, CashMoveType.EXPENSE, CashMethod.CASH, 2000)

    day = _close(seeded, counted_cash=13000, note="todo ok")

    assert day.status == CashDayStatus.CLOSED
    assert day.counted_cash == Decimal("13000")
    assert day.diff_cash == Decimal("0")
    assert day.closed_at is not None
    assert day.close_note == "todo ok"
    assert compute_expected_cash(db.session, day) == Decimal("13000")
    notes = list_day_notes(db.session, day_id=day_id)
    assert notes[-1].kind == CashDayNoteKind.CLOSE
    assert notes[-1].note == "todo ok"


def test_close_reports_shortage_without_failing(ctx, seeded, day_id):
    _record(day_id, CashMoveType.INCOME, CashMethod.CASH, 5000)
    _record(day_id, CashMoveType.EXPENSE, CashMethod.CASH, 2000)

    day = _close(seeded, counted_cash=12500)

    assert day.status == CashDayStatus.CLOSED
    assert day.diff_cash == Decimal("-500")


def test_void_before_close_changes_expected(ctx, seeded, day_id):
    _record(day_id, CashMoveType.INCOME, CashMethod.CASH, 5000)
    expense = _record(day_id, CashMoveType.EXPENSE, CashMethod.CASH, 2000)
    void_movement(db.session, movement_id=expense.id, reason="cargado dos veces")

    day = db.session.get(CashDay, day_id)
    assert compute_expected_cash(db.session, day) == Decimal("15000")

    day = _close(seeded, counted_cash=15000)
    assert day.diff_cash == Decimal("0")


def test_non_cash_methods_do_not_change_expected(ctx, seeded, day_id):
    _record(day_id, CashMoveType.INCOME, CashMethod.TRANSFER, 4000)
    _record(day_id, CashMoveType.EXPENSE, CashMethod.CARD, 100)

    day = _close(seeded, counted_cash=10000)
    assert day.diff_cash == Decimal("0")


def test_close_requires_count_without_override(ctx, seeded, day_id):
    with pytest.raises(MissingCount):
        _close(seeded)
    assert db.session.get(CashDay, day_id).status == CashDayStatus.OPEN


def test_close_rejects_negative_count(ctx, seeded, day_id):
    with pytest.raises(InvalidAmount):
        _close(seeded, counted_cash=-10)


@pytest.mark.parametrize("counted", ["1e40", 1e40, "-1e40"])
def test_close_rejects_out_of_range_count(ctx, seeded, day_id, counted):
    with pytest.raises(InvalidAmount):
        _close(seeded, counted_cash=counted)
    assert db.session.get(CashDay, day_id).status == CashDayStatus.OPEN


def test_override_requires_admin(ctx, seeded, day_id):
    with pytest.raises(Forbidden):
        _close(seeded, admin_override=True, actor_role=ActorRole.OTHER)
    assert db.session.get(CashDay, day_id).status == CashDayStatus.OPEN


def test_admin_override_closes_unreconciled(ctx, seeded, day_id):
    day = _close(seeded, admin_override=True, actor_role=ActorRole.ADMIN, actor_user_id=seeded["admin_id"])

    assert day.status == CashDayStatus.CLOSED
    assert day.counted_cash is None
    assert day.diff_cash is None
    assert day.admin_override is True
    assert day.closed_by_user_id == seeded["admin_id"]


def test_admin_override_with_count_still_computes_diff(ctx, seeded, day_id):
    day = _close(seeded, counted_cash=9900, admin_override=True, actor_role=ActorRole.ADMIN)
    assert day.diff_cash == Decimal("-100")


def test_close_twice_with_same_count_returns_existing_state(ctx, seeded, day_id):
    first = _close(seeded, counted_cash=10000)
    closed_at = first.closed_at

    again = _close(seeded, counted_cash="10000.00")
    assert again.id == first.id
    assert again.status == CashDayStatus.CLOSED
    assert again.closed_at == closed_at
    closes = [n for n in list_day_notes(db.session, day_id=day_id) if n.kind == CashDayNoteKind.CLOSE]
    assert len(closes) == 1


def test_close_again_with_different_count_is_invalid_state(ctx, seeded, day_id):
    _close(seeded, counted_cash=10000)
    with pytest.raises(InvalidState):
        _close(seeded, counted_cash=9000)


def test_close_unknown_day_is_not_found(ctx, seeded):
    with pytest.raises(NotFound):
        _close(seeded, counted_cash=0)


def test_opening_cash_is_frozen_after_close(ctx, seeded, day_id):
    _close(seeded, counted_cash=10000)
    with pytest.raises(InvalidState):
        set_opening_cash(db.session, day_id=day_id, amount=1)


def test_close_retries_when_a_movement_sneaks_in(file_app, monkeypatch):
    """Un movimiento que entra entre el cálculo del esperado y el commit fuerza el reintento."""
    import services.cash_days as cash_days
    from tests.conftest import seed_branch_and_users

    with file_app.app_context():
        ids = seed_branch_and_users()
        day = get_or_create_day(db.session, branch_id=ids["branch_id"], date_key=DATE_KEY)
        day_id = day.id
        set_opening_cash(db.session, day_id=day_id, amount=1000)

        real_expected = cash_days.expected_cash
        calls = {"n": 0}

        def expected_then_concurrent_write(opening, movements):
            calls["n"] += 1
            result = real_expected(opening, movements)
            if calls["n"] == 1:
                # Otra conexión registra un movimiento (como otro cajero)
                with db.engine.begin() as conn:
                    conn.execute(
                        db.text(
                            "INSERT INTO cash_movements (cash_day_id, move_type, method, amount, concept, voided, created_at) "
                            "VALUES (:d, 'INCOME', 'CASH', 500, 'venta', 0, CURRENT_TIMESTAMP)"
                        ),
                        {"d": day_id},
                    )
                    conn.execute(
                        db.text("UPDATE cash_days SET version_id = version_id + 1 WHERE id = :d AND status = 'OPEN'"),
                        {"d": day_id},
                    )
            return result

        monkeypatch.setattr(cash_days, "expected_cash", expected_then_concurrent_write)

        closed = cash_days.close_day(
            db.session,
            branch_id=ids["branch_id"],
            date_key=DATE_KEY,
            counted_cash=1500,
            admin_override=False,
            note=None,
            actor_role=ActorRole.OTHER,
        )

        assert calls["n"] == 2
        assert closed.status == CashDayStatus.CLOSED
        assert closed.diff_cash == Decimal("0")
        db.session.remove()


def test_annotate_requires_admin_and_works_on_closed_day(ctx, seeded, day_id):
    _close(seeded, counted_cash=10000)

    with pytest.raises(Forbidden):
        annotate_day(db.session, day_id=day_id, note="revisado", actor_role=ActorRole.OTHER)
    with pytest.raises(InvalidInput):
        annotate_day(db.session, day_id=day_id, note="  ", actor_role=ActorRole.ADMIN)

    entry = annotate_day(
        db.session,
        day_id=day_id,
        note="Faltante explicado por el encargado",
        actor_role=ActorRole.ADMIN,
        actor_user_id=seeded["admin_id"],
    )
    assert entry.kind == CashDayNoteKind.ANNOTATION
    assert list_day_notes(db.session, day_id=day_id)[-1].note == "Faltante explicado por el encargado"
