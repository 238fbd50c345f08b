from functools import wraps

from flask import g, request
from flask_login import current_user

from models import db
from models.branch import Branch
from models.membership import Role
from services.cash_days import ActorRole
from services.cash_errors import Forbidden, InvalidInput, NotFound


def _requested_branch_id():
    """branchId desde querystring o cuerpo JSON (None si no vino)."""
    raw = request.args.get("branchId")
    if raw in (None, ""):
        data = request.get_json(silent=True)
        if isinstance(data, dict):
            raw = data.get("branchId")
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidInput("branchId inválido", branchId=raw)


def _active_branch(branch_id: int) -> Branch:
    branch = (
        db.session.query(Branch)
        .filter(Branch.id == branch_id, Branch.is_active.is_(True))
        .one_or_none()
    )
    if branch is None:
        raise NotFound("Sucursal inválida o inactiva.", branchId=branch_id)
    return branch


def ensure_branch_access(branch_id: int) -> Branch:
    """Regla:

    - ADMIN/OWNER global (branch_id NULL) => cualquier sucursal activa.
    - CASHIER (o admin amarrado) => solo su sucursal.
    Deja la sucursal y la membership en ``g`` para el resto del request.
    """
    branch = _active_branch(branch_id)
    membership = current_user.membership_for(branch.id)
    if membership is None:
        raise Forbidden("No tienes acceso a esta sucursal.", branchId=branch.id)

    g.cash_branch = branch
    g.cash_membership = membership
    return branch


def resolve_branch() -> Branch:
    """Sucursal del request: la pedida explícitamente o la única del usuario."""
    branch_id = _requested_branch_id()
    if branch_id is None:
        pinned = current_user.pinned_branch_ids()
        if len(pinned) != 1:
            raise InvalidInput("Indicá la sucursal (branchId).")
        branch_id = pinned[0]
    return ensure_branch_access(branch_id)


def require_branch_access():
    """Valida sucursal + membership antes de entrar a la vista (usar después de login_required)."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            resolve_branch()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def current_actor_role(branch_id: int | None = None) -> str:
    """ADMIN si la membership que habilita la sucursal es privilegiada, si no OTHER."""
    membership = g.get("cash_membership")
    if branch_id is not None and (membership is None or not membership.covers(branch_id)):
        membership = current_user.membership_for(branch_id)
    if membership is not None and membership.role in Role.PRIVILEGED:
        return ActorRole.ADMIN
    return ActorRole.OTHER
