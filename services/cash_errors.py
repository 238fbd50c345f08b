"""Errores de la caja.

Todos heredan de ValueError (igual que los servicios de stock) y llevan un
``kind`` estable para el cliente y el status HTTP con el que se responde.
"""


class CashError(ValueError):
    kind = "CashError"
    http_status = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        data = {"error": self.kind, "message": self.message}
        if self.context:
            data["context"] = self.context
        return data


class InvalidState(CashError):
    kind = "InvalidState"
    http_status = 409


class InvalidAmount(CashError):
    kind = "InvalidAmount"
    http_status = 422


class MissingConcept(CashError):
    kind = "MissingConcept"
    http_status = 422


class MissingCount(CashError):
    kind = "MissingCount"
    http_status = 422


class AlreadyVoided(CashError):
    kind = "AlreadyVoided"
    http_status = 409


class Forbidden(CashError):
    kind = "Forbidden"
    http_status = 403


class NotFound(CashError):
    kind = "NotFound"
    http_status = 404


class InvalidInput(CashError):
    kind = "InvalidInput"
    http_status = 400


class Conflict(CashError):
    """El cierre no pudo completarse por escrituras concurrentes (reintentable)."""

    kind = "Conflict"
    http_status = 409
