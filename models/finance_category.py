from datetime import datetime

from models import db


class CategoryType:
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    BOTH = "BOTH"

    ALL = {INCOME, EXPENSE, BOTH}


class FinanceCategory(db.Model):
    """Directorio de categorías de finanzas.

    Lo administra el módulo de finanzas; la caja solo lo lee para mostrar nombres.
    Los movimientos guardan el id como referencia (sin FK).
    """

    __tablename__ = "finance_categories"

    id = db.Column(db.String(64), primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(10), nullable=True)  # CategoryType.*
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "isActive": bool(self.is_active),
        }
