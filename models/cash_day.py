from datetime import datetime

from models import db


class CashDayStatus:
    OPEN = "OPEN"
    CLOSED = "CLOSED"

    ALL = {OPEN, CLOSED}


class CashDayNoteKind:
    OPENING = "OPENING"        # cambio de efectivo inicial
    CLOSE = "CLOSE"            # cierre de caja
    ANNOTATION = "ANNOTATION"  # anotación administrativa

    ALL = {OPENING, CLOSE, ANNOTATION}


def _iso(dt):
    return dt.isoformat() + "Z" if dt else None


def _num(v):
    return float(v) if v is not None else None


class CashDay(db.Model):
    """Día de caja: un libro por (branch_id, date_key).

    - status solo pasa de OPEN a CLOSED.
    - expected_cash NO se guarda: se calcula desde los movimientos no anulados.
    - counted_cash / diff_cash se guardan una sola vez, al cerrar.
    - version_id lo incrementa toda escritura que depende de que el día esté OPEN;
      el cierre falla (StaleDataError) si algo cambió después de calcular el esperado.
    """

    __tablename__ = "cash_days"

    id = db.Column(db.Integer, primary_key=True)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    date_key = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD

    status = db.Column(db.String(10), nullable=False, default=CashDayStatus.OPEN, index=True)

    opening_cash = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    counted_cash = db.Column(db.Numeric(12, 2), nullable=True)
    diff_cash = db.Column(db.Numeric(12, 2), nullable=True)

    admin_override = db.Column(db.Boolean, nullable=False, default=False)
    close_note = db.Column(db.Text, nullable=True)
    closed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    opened_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    closed_at = db.Column(db.DateTime, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    movements = db.relationship(
        "CashMovement",
        back_populates="cash_day",
        order_by="CashMovement.id",
        lazy="select",
    )
    notes = db.relationship(
        "CashDayNote",
        back_populates="cash_day",
        order_by="CashDayNote.id",
        lazy="select",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        db.UniqueConstraint("branch_id", "date_key", name="uq_cash_days_branch_date"),
    )

    @property
    def is_open(self) -> bool:
        return self.status == CashDayStatus.OPEN

    def to_dict(self, expected_cash=None) -> dict:
        return {
            "id": self.id,
            "branchId": self.branch_id,
            "dateKey": self.date_key,
            "status": self.status,
            "openingCash": _num(self.opening_cash),
            "expectedCash": _num(expected_cash),
            "countedCash": _num(self.counted_cash),
            "diffCash": _num(self.diff_cash),
            "adminOverride": bool(self.admin_override),
            "closeNote": self.close_note,
            "openedAt": _iso(self.opened_at),
            "closedAt": _iso(self.closed_at),
        }

    def __repr__(self) -> str:
        return f"<CashDay {self.id} branch={self.branch_id} {self.date_key} {self.status}>"


class CashDayNote(db.Model):
    """Bitácora de auditoría del día (solo se agregan filas, nunca se editan)."""

    __tablename__ = "cash_day_notes"

    id = db.Column(db.Integer, primary_key=True)

    cash_day_id = db.Column(db.Integer, db.ForeignKey("cash_days.id"), nullable=False, index=True)
    kind = db.Column(db.String(20), nullable=False)  # CashDayNoteKind.*
    note = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    cash_day = db.relationship("CashDay", back_populates="notes")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cashDayId": self.cash_day_id,
            "kind": self.kind,
            "note": self.note,
            "createdByUserId": self.created_by_user_id,
            "createdAt": _iso(self.created_at),
        }
