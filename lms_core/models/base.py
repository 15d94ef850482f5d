from datetime import datetime, timezone
from sqlalchemy.orm import as_declarative, declared_attr
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import DateTime
from sqlalchemy.dialects.postgresql import UUID
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordMixin:
    id: Mapped[uuid.UUID]

    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower()

    # Use proper PostgreSQL UUID type with auto-generation
    id = mapped_column(UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    created_at = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


# Central and tenant tables live in different databases, so each gets its own metadata
@as_declarative()
class CentralBase(RecordMixin):
    __abstract__ = True


@as_declarative()
class TenantBase(RecordMixin):
    __abstract__ = True
