from datetime import datetime
from . import db


class Branch(db.Model):
    """Sucursal = una caja física (tenant del libro de caja).

    Todas las consultas y la unicidad de los días de caja se acotan por branch_id.
    """

    __tablename__ = "branches"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False, unique=True)
    timezone = db.Column(db.String(64), nullable=True)  # None => CASH_TIMEZONE
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Branch {self.id} {self.name} active={self.is_active}>"
