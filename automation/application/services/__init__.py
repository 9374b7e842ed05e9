"""Application services: action interpretation and cadence evaluation."""

from automation.application.services.action_interpreter import ActionInterpreter
from automation.application.services.cadence_evaluator import (
    CadenceEvaluator,
    CadenceRule,
    CadenceWindow,
)

__all__ = [
    "ActionInterpreter",
    "CadenceEvaluator",
    "CadenceRule",
    "CadenceWindow",
]
