from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from flask import Blueprint, current_app, g, jsonify, request
from flask_login import current_user, login_required

from models import db
from models.branch import Branch
from models.cash_day import CashDay
from models.cash_movement import CashMovement
from routes.guards import current_actor_role, ensure_branch_access, require_branch_access
from services.cash_days import (
    annotate_day,
    close_day,
    compute_expected_cash,
    day_summary,
    find_day,
    get_day,
    get_or_create_day,
    list_day_notes,
    open_day,
)
from services.cash_errors import InvalidInput, NotFound
from services.cash_movements import create_movement, list_movements, void_movement
from services.cash_summary import summary_to_json
from services.categories import CategoryDirectory
from services.money import validate_date_key


cash_bp = Blueprint("cash", __name__, url_prefix="/cash")


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("El cuerpo debe ser un objeto JSON.")
    return data


def _today_key(branch: Branch) -> str:
    tz = ZoneInfo(branch.timezone or current_app.config["CASH_TIMEZONE"])
    return datetime.now(tz).strftime("%Y-%m-%d")


def _date_key(raw, branch: Branch) -> str:
    if raw in (None, ""):
        return _today_key(branch)
    return validate_date_key(raw)


def _as_id(v, field: str) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} inválido", **{field: v})


def _flag(v) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "si", "sí")
    return bool(v)


def _day_json(day: CashDay) -> dict:
    return day.to_dict(expected_cash=compute_expected_cash(db.session, day))


def _day_for_caller(day_id: int) -> CashDay:
    day = get_day(db.session, day_id)
    ensure_branch_access(day.branch_id)
    return day


@cash_bp.post("/day/get-or-create")
@login_required
@require_branch_access()
def day_get_or_create():
    data = _payload()
    branch = g.cash_branch
    day = get_or_create_day(db.session, branch_id=branch.id, date_key=_date_key(data.get("dateKey"), branch))
    return jsonify(_day_json(day))


@cash_bp.post("/day/open")
@login_required
@require_branch_access()
def day_open():
    """Apertura: crea el día si hace falta y fija el efectivo inicial."""
    data = _payload()
    branch = g.cash_branch
    day = open_day(
        db.session,
        branch_id=branch.id,
        date_key=_date_key(data.get("dateKey"), branch),
        opening_cash=data.get("openingCash"),
        actor_user_id=current_user.id,
    )
    return jsonify(_day_json(day))


@cash_bp.get("/summary")
@login_required
@require_branch_access()
def summary():
    branch = g.cash_branch
    date_key = _date_key(request.args.get("dateKey"), branch)
    day = find_day(db.session, branch_id=branch.id, date_key=date_key)
    if day is None:
        raise NotFound("No hay caja para ese día", branchId=branch.id, dateKey=date_key)

    directory = CategoryDirectory()
    s = day_summary(db.session, day, directory.resolve_name, directory.resolve_type)
    return jsonify({"day": day.to_dict(expected_cash=s["expectedCash"]), **summary_to_json(s)})


@cash_bp.get("/movements/<int:day_id>")
@login_required
def movements_list(day_id: int):
    day = _day_for_caller(day_id)
    rows = list_movements(db.session, day_id=day.id)
    return jsonify([m.to_dict() for m in rows])


@cash_bp.post("/movement")
@login_required
def movement_new():
    data = _payload()
    day = _day_for_caller(_as_id(data.get("cashDayId"), "cashDayId"))

    m = create_movement(
        db.session,
        day_id=day.id,
        move_type=data.get("type"),
        method=data.get("method"),
        amount=data.get("amount"),
        category_id=data.get("categoryId"),
        concept=data.get("concept"),
        note=data.get("note"),
        created_by_user_id=current_user.id,
    )
    return jsonify(m.to_dict()), 201


@cash_bp.post("/movement/<int:movement_id>/void")
@login_required
def movement_void(movement_id: int):
    data = _payload()
    m = db.session.get(CashMovement, movement_id)
    if m is None:
        raise NotFound("Movimiento inexistente", movementId=movement_id)
    _day_for_caller(m.cash_day_id)

    m = void_movement(
        db.session,
        movement_id=movement_id,
        reason=data.get("reason"),
        actor_user_id=current_user.id,
    )
    return jsonify(m.to_dict())


@cash_bp.post("/day/close")
@login_required
@require_branch_access()
def day_close():
    data = _payload()
    branch = g.cash_branch
    day = close_day(
        db.session,
        branch_id=branch.id,
        date_key=_date_key(data.get("dateKey"), branch),
        counted_cash=data.get("countedCash"),
        admin_override=_flag(data.get("adminOverride")),
        note=data.get("note"),
        actor_role=current_actor_role(branch.id),
        actor_user_id=current_user.id,
        max_retries=current_app.config["CASH_CLOSE_MAX_RETRIES"],
    )
    return jsonify(_day_json(day))


@cash_bp.get("/day/<int:day_id>/notes")
@login_required
def day_notes(day_id: int):
    day = _day_for_caller(day_id)
    return jsonify([n.to_dict() for n in list_day_notes(db.session, day_id=day.id)])


@cash_bp.post("/day/<int:day_id>/notes")
@login_required
def day_annotate(day_id: int):
    data = _payload()
    day = _day_for_caller(day_id)
    entry = annotate_day(
        db.session,
        day_id=day.id,
        note=data.get("note"),
        actor_role=current_actor_role(day.branch_id),
        actor_user_id=current_user.id,
    )
    return jsonify(entry.to_dict()), 201


@cash_bp.get("/categories")
@login_required
def categories():
    return jsonify([c.to_dict() for c in CategoryDirectory().list_active()])
