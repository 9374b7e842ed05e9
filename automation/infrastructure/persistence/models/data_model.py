"""Generic attribute-value store: DataModel, DataModelAttribute, DataRecord, DataRecordValue."""

import sqlalchemy as sa
from sqlalchemy import (
    Boolean,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from automation.domain.enums import AttributeType
from automation.infrastructure.persistence.database import Base
from automation.infrastructure.persistence.models.mixins import (
    CuidMixin,
    SoftDeleteMixin,
    TimestampMixin,
    enum_check,
)


class DataModel(CuidMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A user-defined table. Table: data_model."""

    __tablename__ = "data_model"

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.true()
    )

    attributes: Mapped[list["DataModelAttribute"]] = relationship(
        back_populates="data_model",
        order_by="DataModelAttribute.order",
        cascade="all, delete-orphan",
    )


class DataModelAttribute(CuidMixin, TimestampMixin, Base):
    """A column of a data model. Table: data_model_attribute."""

    __tablename__ = "data_model_attribute"

    data_model_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("data_model.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    attribute_type: Mapped[str] = mapped_column(
        String, nullable=False, default=AttributeType.TEXT.value
    )
    default_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.true()
    )
    order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )

    data_model: Mapped[DataModel] = relationship(back_populates="attributes")

    __table_args__ = (
        enum_check(
            "attribute_type",
            AttributeType.values(),
            "data_model_attribute_type_check",
        ),
    )


class DataRecord(CuidMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A row of a data model. Table: data_record."""

    __tablename__ = "data_record"

    data_model_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("data_model.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.true()
    )


class DataRecordValue(CuidMixin, TimestampMixin, Base):
    """Value of one attribute on one record. Table: data_record_value.

    value_number mirrors value when it parses as a finite number; numeric
    predicates compare against it.
    """

    __tablename__ = "data_record_value"

    record_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("data_record.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attribute_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("data_model_attribute.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    value_number: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "record_id", "attribute_id", name="uq_data_record_value_record_attribute"
        ),
    )
