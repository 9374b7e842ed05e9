"""Predicate compiler: workflow conditions -> SQL selecting matching record ids.

Every operator maps to one clause builder in a dispatch table. Positive
operators are correlated EXISTS subqueries over data_record_value; their
negations are NOT EXISTS, so a record with no stored value counts as
"not equal", "not containing" and "empty". Comparison values are always
bound parameters.
"""

from collections.abc import Callable, Sequence
from typing import Any

from sqlalchemy import Select, and_, func, not_, or_, select
from sqlalchemy.sql.elements import ColumnElement

from automation.domain.entities.workflow import ConditionSpec
from automation.domain.enums import ConditionOperator, LogicalOperator
from automation.domain.exceptions import PredicateCompileException
from automation.infrastructure.persistence.models.data_model import (
    DataRecord,
    DataRecordValue,
)
from automation.shared.telemetry.logging import get_logger
from automation.shared.utils.values import parse_number

logger = get_logger(__name__)

ClauseBuilder = Callable[[ConditionSpec], ColumnElement[bool]]


def _tag(operator: ConditionOperator | str) -> str:
    return operator.value if isinstance(operator, ConditionOperator) else operator


def _value_exists(attribute_id: str, *criteria: Any) -> ColumnElement[bool]:
    return (
        select(DataRecordValue.id)
        .where(
            DataRecordValue.record_id == DataRecord.id,
            DataRecordValue.attribute_id == attribute_id,
            *criteria,
        )
        .exists()
    )


def _equals(c: ConditionSpec) -> ColumnElement[bool]:
    return _value_exists(c.attribute_id, DataRecordValue.value == (c.value or ""))


def _contains(c: ConditionSpec) -> ColumnElement[bool]:
    needle = (c.value or "").lower()
    return _value_exists(
        c.attribute_id,
        func.lower(DataRecordValue.value).contains(needle, autoescape=True),
    )


def _is_not_empty(c: ConditionSpec) -> ColumnElement[bool]:
    return _value_exists(
        c.attribute_id,
        DataRecordValue.value.is_not(None),
        DataRecordValue.value != "",
    )


def _numeric_operand(c: ConditionSpec) -> float:
    number = parse_number(c.value)
    if number is None:
        raise PredicateCompileException(
            f"Comparison value {c.value!r} is not a number",
            condition_id=c.id,
            operator=_tag(c.operator),
        )
    return number


def _greater_than(c: ConditionSpec) -> ColumnElement[bool]:
    return _value_exists(c.attribute_id, DataRecordValue.value_number > _numeric_operand(c))


def _less_than(c: ConditionSpec) -> ColumnElement[bool]:
    return _value_exists(c.attribute_id, DataRecordValue.value_number < _numeric_operand(c))


def _negated(builder: ClauseBuilder) -> ClauseBuilder:
    def build(c: ConditionSpec) -> ColumnElement[bool]:
        return not_(builder(c))

    return build


CLAUSE_BUILDERS: dict[ConditionOperator, ClauseBuilder] = {
    ConditionOperator.EQUALS: _equals,
    ConditionOperator.NOT_EQUALS: _negated(_equals),
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.NOT_CONTAINS: _negated(_contains),
    ConditionOperator.IS_NOT_EMPTY: _is_not_empty,
    ConditionOperator.IS_EMPTY: _negated(_is_not_empty),
    ConditionOperator.GREATER_THAN: _greater_than,
    ConditionOperator.LESS_THAN: _less_than,
}


class PredicateCompiler:
    """Compiles an ordered condition list into a record-id query for one data model.

    In permissive mode (default) a condition with an unsupported operator is
    dropped with a warning; in strict mode it is a PredicateCompileException.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def compile(
        self, data_model_id: str, conditions: Sequence[ConditionSpec]
    ) -> Select[tuple[str]]:
        """Return a SELECT of distinct ids of live records matching `conditions`."""
        stmt = select(DataRecord.id).where(
            DataRecord.data_model_id == data_model_id,
            DataRecord.is_active.is_(True),
            DataRecord.deleted_at.is_(None),
        )
        predicate = self.build_predicate(conditions)
        if predicate is not None:
            stmt = stmt.where(predicate)
        return stmt.distinct()

    def build_predicate(
        self, conditions: Sequence[ConditionSpec]
    ) -> ColumnElement[bool] | None:
        """Fold clauses strictly left to right; None when no clause survives."""
        predicate: ColumnElement[bool] | None = None
        for condition in sorted(conditions, key=lambda c: c.order):
            clause = self._clause(condition)
            if clause is None:
                continue
            if predicate is None:
                # The leading clause's logical operator has nothing to join.
                predicate = clause
            elif self._logical_operator(condition) == LogicalOperator.OR:
                predicate = or_(predicate, clause)
            else:
                predicate = and_(predicate, clause)
        return predicate

    def _clause(self, condition: ConditionSpec) -> ColumnElement[bool] | None:
        builder = (
            CLAUSE_BUILDERS.get(condition.operator)
            if isinstance(condition.operator, ConditionOperator)
            else None
        )
        if builder is None:
            if self.strict:
                raise PredicateCompileException(
                    f"Unsupported condition operator: {condition.operator!r}",
                    condition_id=condition.id,
                    operator=_tag(condition.operator),
                )
            logger.warning(
                "Dropping condition %s with unsupported operator %r",
                condition.id,
                condition.operator,
            )
            return None
        return builder(condition)

    @staticmethod
    def _logical_operator(condition: ConditionSpec) -> LogicalOperator:
        op = condition.logical_operator
        if isinstance(op, LogicalOperator):
            return op
        if op is None or not op.strip():
            return LogicalOperator.AND
        raise PredicateCompileException(
            f"Unknown logical operator: {op!r}",
            condition_id=condition.id,
            operator=op,
        )
