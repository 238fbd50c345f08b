from app import create_app
from models import db
from models.branch import Branch
from models.finance_category import CategoryType, FinanceCategory
from models.membership import BranchUser, Role
from models.user import User


DEMO_CATEGORIES = [
    ("ventas", "Ventas mostrador", CategoryType.INCOME),
    ("proveedores", "Pago a proveedores", CategoryType.EXPENSE),
    ("insumos", "Insumos", CategoryType.EXPENSE),
    ("retiros", "Retiros de caja", CategoryType.EXPENSE),
    ("varios", "Varios", CategoryType.BOTH),
]


def _user(email: str, full_name: str, password: str) -> User:
    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        user = User(email=email, full_name=full_name, is_active=True)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()
    else:
        # Opcional: asegura que esté activo
        user.is_active = True
    return user


def _membership(user: User, branch_id, role: str) -> None:
    m = db.session.query(BranchUser).filter_by(user_id=user.id, branch_id=branch_id).first()
    if not m:
        db.session.add(BranchUser(user_id=user.id, branch_id=branch_id, role=role, is_active=True))
    else:
        m.is_active = True
        m.role = role


def run():
    app = create_app()
    with app.app_context():
        # ✅ Importante:
        # No usamos db.create_all() porque ya estamos trabajando con migraciones (Flask-Migrate).
        # Asegúrate de haber corrido: flask db upgrade

        # 1) Sucursal demo
        branch = db.session.query(Branch).filter_by(name="Sucursal Centro").first()
        if not branch:
            branch = Branch(name="Sucursal Centro", is_active=True)
            db.session.add(branch)
            db.session.flush()

        # 2) Admin global (branch_id = NULL) y cajero amarrado a la sucursal
        admin = _user("admin@demo.com", "Admin Demo", "admin1234")
        _membership(admin, None, Role.ADMIN)

        cashier = _user("caja@demo.com", "Cajero Demo", "caja1234")
        _membership(cashier, branch.id, Role.CASHIER)

        # 3) Directorio de categorías (lo administra finanzas; acá solo demo)
        for cid, name, ctype in DEMO_CATEGORIES:
            if not db.session.get(FinanceCategory, cid):
                db.session.add(FinanceCategory(id=cid, name=name, type=ctype, is_active=True))

        db.session.commit()

        print("✅ Seed listo.")
        print("Admin: admin@demo.com / admin1234 (todas las sucursales, puede usar override)")
        print(f"Cajero: caja@demo.com / caja1234 (sucursal {branch.id})")


if __name__ == "__main__":
    run()
