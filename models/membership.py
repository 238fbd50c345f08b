from datetime import datetime
from . import db


class Role:
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    CASHIER = "CASHIER"

    ALL = {OWNER, ADMIN, CASHIER}

    # Pueden cerrar caja con override y anotar días cerrados
    PRIVILEGED = {OWNER, ADMIN}


class BranchUser(db.Model):
    """Permiso de un usuario sobre las cajas.

    - CASHIER: branch_id obligatorio (solo opera su caja).
    - ADMIN / OWNER: branch_id puede ser NULL => acceso a todas las sucursales.
    """

    __tablename__ = "branch_users"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    role = db.Column(db.String(20), nullable=False)  # Role.*
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="memberships")
    branch = db.relationship("Branch")

    __table_args__ = (
        db.UniqueConstraint("user_id", "branch_id", name="uq_branch_users_user_branch"),
    )

    @property
    def is_global(self) -> bool:
        return self.branch_id is None

    def covers(self, branch_id: int) -> bool:
        if not self.is_active:
            return False
        return self.is_global or self.branch_id == branch_id

    def __repr__(self) -> str:
        return f"<BranchUser user={self.user_id} branch={self.branch_id} role={self.role}>"
