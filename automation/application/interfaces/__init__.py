"""Ports (protocols) implemented by infrastructure."""

from automation.application.interfaces.repositories import (
    IAttributeValueStore,
    IExecutionHistory,
)
from automation.application.interfaces.services import (
    IDataSyncRunner,
    IExpressionEvaluator,
)

__all__ = [
    "IAttributeValueStore",
    "IDataSyncRunner",
    "IExecutionHistory",
    "IExpressionEvaluator",
]
