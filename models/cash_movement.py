from datetime import datetime

from models import db
from models.cash_day import _iso


class CashMoveType:
    INCOME = "INCOME"    # Ingreso
    EXPENSE = "EXPENSE"  # Egreso

    ALL = {INCOME, EXPENSE}


class CashMethod:
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    CARD = "CARD"
    OTHER = "OTHER"

    # Orden fijo para los resúmenes
    ORDER = (CASH, TRANSFER, CARD, OTHER)
    ALL = set(ORDER)


class CashMovement(db.Model):
    """Movimiento de caja (ingreso/egreso) dentro de un día.

    amount siempre positivo: el signo lo da move_type.
    Nunca se borra; anular = voided + void_reason + voided_at (una sola vez).
    category_id es una referencia al directorio de categorías, no una FK.
    """

    __tablename__ = "cash_movements"

    id = db.Column(db.Integer, primary_key=True)

    cash_day_id = db.Column(db.Integer, db.ForeignKey("cash_days.id"), nullable=False, index=True)

    move_type = db.Column(db.String(10), nullable=False, index=True)  # CashMoveType.*
    method = db.Column(db.String(10), nullable=False, index=True)  # CashMethod.*
    amount = db.Column(db.Numeric(12, 2), nullable=False)

    category_id = db.Column(db.String(64), nullable=True, index=True)
    concept = db.Column(db.String(160), nullable=False)
    note = db.Column(db.Text, nullable=True)

    voided = db.Column(db.Boolean, nullable=False, default=False, index=True)
    void_reason = db.Column(db.Text, nullable=True)
    voided_at = db.Column(db.DateTime, nullable=True)
    voided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    cash_day = db.relationship("CashDay", back_populates="movements")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cashDayId": self.cash_day_id,
            "type": self.move_type,
            "method": self.method,
            "amount": float(self.amount),
            "categoryId": self.category_id,
            "concept": self.concept,
            "note": self.note or "",
            "voided": bool(self.voided),
            "voidReason": self.void_reason,
            "voidedAt": _iso(self.voided_at),
            "createdAt": _iso(self.created_at),
            "createdByUserId": self.created_by_user_id,
        }

    def __repr__(self) -> str:
        return f"<CashMovement {self.id} day={self.cash_day_id} {self.move_type} {self.method} {self.amount}>"
