"""SQLAlchemy mixins shared by engine models: CuidMixin, TimestampMixin, SoftDeleteMixin."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from automation.shared.utils.generators import generate_cuid


class CuidMixin:
    """Primary key `id` defaulting to a fresh CUID2."""

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class TimestampMixin:
    """created_at / updated_at with server defaults (timezone-aware)."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class SoftDeleteMixin:
    """deleted_at: null means live."""

    @declared_attr
    def deleted_at(cls) -> Mapped[datetime | None]:
        return mapped_column(DateTime(timezone=True), nullable=True, index=True)


def enum_check(column: str, values: list[str], name: str) -> CheckConstraint:
    """CHECK constraint restricting `column` to `values`."""
    return CheckConstraint(
        "{} IN ({})".format(
            column,
            ", ".join("'{}'".format(v.replace("'", "''")) for v in values),
        ),
        name=name,
    )
