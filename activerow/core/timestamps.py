"""Created-at / updated-at bookkeeping for entities."""

from datetime import datetime
from typing import TYPE_CHECKING

from activerow.core import dates

if TYPE_CHECKING:
    from activerow.core.entity import Entity

CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"


class TimestampPolicy:
    """Resolves an entity's timestamp columns and stamps them.

    The columns default to ``created_at`` / ``updated_at`` and follow the
    ``createdAt`` / ``updatedAt`` entries of ``column_alias`` when declared.
    """

    def __init__(self, entity: "Entity"):
        self.entity = entity

    @property
    def enabled(self) -> bool:
        return bool(type(self.entity).timestamps)

    @property
    def created_at_column(self) -> str:
        return type(self.entity).column_alias.get(CREATED_AT, "created_at")

    @property
    def updated_at_column(self) -> str:
        return type(self.entity).column_alias.get(UPDATED_AT, "updated_at")

    def columns(self) -> list[str]:
        """Timestamp columns to treat as dates, empty when timestamps are off."""
        if not self.enabled:
            return []
        return [self.created_at_column, self.updated_at_column]

    def fresh_timestamp(self) -> datetime:
        return datetime.now().replace(microsecond=0)

    def fresh_timestamp_string(self) -> str:
        return dates.from_datetime(self.fresh_timestamp(), self.entity.get_date_format())

    def update_timestamps(self) -> None:
        """Stamp updated-at, and created-at for unsaved entities, unless set by hand."""
        now = self.fresh_timestamp()
        store = self.entity.attribute_store

        if not store.is_dirty(self.updated_at_column):
            store.set_attribute(self.updated_at_column, now)

        if not self.entity.exists and not store.is_dirty(self.created_at_column):
            store.set_attribute(self.created_at_column, now)
