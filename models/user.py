from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from . import db, login_manager
from .membership import Role


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(180), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(120), nullable=False)

    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    memberships = db.relationship("BranchUser", back_populates="user", cascade="all, delete-orphan")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def membership_for(self, branch_id: int):
        """Membership activa que habilita la sucursal.

        Si hay varias, gana la privilegiada (un admin global nunca queda
        reducido a cajero por tener además una membership de sucursal).
        """
        matches = [m for m in self.memberships if m.covers(branch_id)]
        if not matches:
            return None
        matches.sort(key=lambda m: (m.role not in Role.PRIVILEGED, m.is_global))
        return matches[0]

    def pinned_branch_ids(self) -> list[int]:
        return sorted({m.branch_id for m in self.memberships if m.is_active and m.branch_id is not None})

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "fullName": self.full_name}

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, int(user_id))
