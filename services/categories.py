import logging
from typing import Optional

from models import db
from models.finance_category import FinanceCategory


logger = logging.getLogger(__name__)


class CategoryDirectory:
    """Lectura del directorio de categorías de finanzas (nombre y tipo para mostrar)."""

    def __init__(self, session=None):
        self._session = session
        self._cache: dict[str, Optional[tuple[str, Optional[str]]]] = {}

    @property
    def session(self):
        return self._session or db.session

    def _lookup(self, category_id: str) -> Optional[tuple[str, Optional[str]]]:
        if category_id in self._cache:
            return self._cache[category_id]
        row = self.session.get(FinanceCategory, category_id)
        entry = (row.name, row.type) if row else None
        if entry is None:
            logger.info("Categoría %s no encontrada en el directorio", category_id)
        self._cache[category_id] = entry
        return entry

    def resolve_name(self, category_id: str) -> Optional[str]:
        entry = self._lookup(category_id)
        return entry[0] if entry else None

    def resolve_type(self, category_id: str) -> Optional[str]:
        entry = self._lookup(category_id)
        return entry[1] if entry else None

    def list_active(self) -> list[FinanceCategory]:
        return (
            self.session.query(FinanceCategory)
            .filter(FinanceCategory.is_active.is_(True))
            .order_by(FinanceCategory.name.asc())
            .all()
        )
