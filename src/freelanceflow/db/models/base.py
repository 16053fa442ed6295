# Shared SQLAlchemy base classes and timestamp mixins
from datetime import datetime, UTC

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


def make_timestamp_mixin(created: str = "created_at", modified: str = "updated_at"):
    """Dynamically build a mixin with creation/modification timestamps.

    Proposals call their creation stamp ``submitted_at`` while projects and
    members use ``created_at``. The modification stamp is refreshed through
    ``onupdate`` on every UPDATE, including the guarded bulk updates in
    :mod:`freelanceflow.db.crud`.
    """

    fields = {
        created: mapped_column(DateTime(timezone=True), default=utcnow, index=True),
        modified: mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow),
        "__annotations__": {
            created: Mapped[datetime],
            modified: Mapped[datetime],
        },
    }
    name = "".join(part.capitalize() for part in created.split("_"))
    return type(f"{name}TimestampMixin", (object,), fields)


class Base(DeclarativeBase):
    __table_args__ = {"sqlite_autoincrement": True}
