"""Action interpreter: compute and write the new value for each workflow action."""

from __future__ import annotations

from collections.abc import Sequence

from automation.application.dtos.execution import ActionOutcome, RecordSnapshot
from automation.application.interfaces.repositories import IAttributeValueStore
from automation.application.interfaces.services import IExpressionEvaluator
from automation.domain.entities.workflow import ActionSpec
from automation.domain.enums import ActionType, ExecutionResultStatus
from automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class ActionInterpreter:
    """Applies actions to one record at a time.

    compute_value returns None for a no-op (nothing is written and no result
    row is produced). Failures while computing or writing never escape
    apply(): they become FAILED outcomes so the remaining actions and
    records still run.
    """

    def __init__(
        self, store: IAttributeValueStore, evaluator: IExpressionEvaluator
    ) -> None:
        self._store = store
        self._evaluator = evaluator

    async def compute_value(
        self, action: ActionSpec, snapshot: RecordSnapshot
    ) -> str | None:
        """Return the value to write for `action`, or None to skip the write."""
        action_type = action.action_type
        if action_type == ActionType.UPDATE_VALUE:
            return action.update_value if action.update_value is not None else ""
        if action_type == ActionType.SET_DEFAULT:
            default = await self._store.get_attribute_default(
                action.target_attribute_id
            )
            return default if default is not None else ""
        if action_type == ActionType.COPY_FROM:
            if not action.source_attribute_id:
                return None
            value = snapshot.value_of(action.source_attribute_id)
            return value if value is not None else ""
        if action_type == ActionType.CALCULATE:
            if not action.calculation_formula:
                return None
            return self._evaluator.evaluate(
                action.calculation_formula, snapshot.by_name()
            )
        raise ValueError(f"Unsupported action type: {action_type}")

    async def apply(
        self, action: ActionSpec, snapshot: RecordSnapshot
    ) -> ActionOutcome | None:
        """Compute and upsert one action's value; None when the action is a no-op."""
        try:
            new_value = await self.compute_value(action, snapshot)
            if new_value is None:
                return None
            await self._store.upsert_value(
                snapshot.record_id, action.target_attribute_id, new_value
            )
        except Exception as e:
            logger.warning(
                "Action %s failed on record %s: %s",
                action.id,
                snapshot.record_id,
                e,
            )
            return ActionOutcome(
                record_id=snapshot.record_id,
                action_id=action.id,
                status=ExecutionResultStatus.FAILED,
                error=str(e) or e.__class__.__name__,
            )
        return ActionOutcome(
            record_id=snapshot.record_id,
            action_id=action.id,
            status=ExecutionResultStatus.SUCCESS,
            new_value=new_value,
        )

    async def apply_all(
        self, actions: Sequence[ActionSpec], snapshot: RecordSnapshot
    ) -> list[ActionOutcome]:
        """Apply actions in ascending order; return outcomes of non-no-op actions."""
        outcomes: list[ActionOutcome] = []
        for action in sorted(actions, key=lambda a: a.order):
            outcome = await self.apply(action, snapshot)
            if outcome is not None:
                outcomes.append(outcome)
        return outcomes
