"""Fixtures de la caja: app Flask sobre SQLite, sucursal, usuarios y categorías.

Los tests de servicios usan ``ctx`` (app context activo). Los tests HTTP NO lo
usan: cada request abre su propio contexto y así ``g`` (usuario logueado,
membership) no se comparte entre requests.
"""

from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.branch import Branch
from models.finance_category import CategoryType, FinanceCategory
from models.membership import BranchUser, Role
from models.user import User
from services.cash_days import get_or_create_day, set_opening_cash


PASSWORD = "secret123"
DATE_KEY = "2026-10-17"


def _build_app(config_object):
    app = create_app(config_object)
    with app.app_context():
        db.create_all()
    return app


def _drop(app):
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def app():
    app = _build_app(TestConfig)
    yield app
    _drop(app)


@pytest.fixture
def file_app(tmp_path):
    """SQLite en archivo: conexiones reales separadas (tests de concurrencia)."""
    config = type(
        "FileDbTestConfig",
        (TestConfig,),
        {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'caja.db'}"},
    )
    app = _build_app(config)
    yield app
    _drop(app)


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app
        db.session.remove()


def _make_user(email: str, full_name: str) -> User:
    user = User(email=email, full_name=full_name, is_active=True)
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.flush()
    return user


def seed_branch_and_users() -> dict:
    branch = Branch(name="Sucursal Centro", is_active=True)
    other = Branch(name="Sucursal Norte", is_active=True)
    db.session.add_all([branch, other])
    db.session.flush()

    admin = _make_user("admin@test.com", "Admin")
    db.session.add(BranchUser(user_id=admin.id, branch_id=None, role=Role.ADMIN))

    cashier = _make_user("caja@test.com", "Cajero")
    db.session.add(BranchUser(user_id=cashier.id, branch_id=branch.id, role=Role.CASHIER))

    db.session.add_all([
        FinanceCategory(id="ventas", name="Ventas mostrador", type=CategoryType.INCOME),
        FinanceCategory(id="proveedores", name="Pago a proveedores", type=CategoryType.EXPENSE),
        FinanceCategory(id="viejo", name="Categoría vieja", type=CategoryType.BOTH, is_active=False),
    ])
    db.session.commit()
    return {
        "branch_id": branch.id,
        "other_branch_id": other.id,
        "admin_id": admin.id,
        "cashier_id": cashier.id,
    }


@pytest.fixture
def seeded(app):
    with app.app_context():
        ids = seed_branch_and_users()
        db.session.remove()
    return ids


@pytest.fixture
def day_id(app, seeded):
    """Id de un día abierto con efectivo inicial 10000."""
    with app.app_context():
        day = get_or_create_day(db.session, branch_id=seeded["branch_id"], date_key=DATE_KEY)
        day = set_opening_cash(db.session, day_id=day.id, amount=Decimal("10000"))
        day_id = day.id
        db.session.remove()
    return day_id


def login(client, email: str):
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return resp


@pytest.fixture
def cashier_client(app, seeded):
    c = app.test_client()
    login(c, "caja@test.com")
    return c


@pytest.fixture
def admin_client(app, seeded):
    c = app.test_client()
    login(c, "admin@test.com")
    return c
