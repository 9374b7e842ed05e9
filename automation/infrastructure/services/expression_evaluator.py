"""CALCULATE formula evaluators.

JinjaExpressionEvaluator evaluates a single Jinja2 expression in a sandbox.
Record values are exposed by attribute name. Values written as plain decimal
numbers are passed as numbers so `price * quantity` does arithmetic; anything
else, including codes with leading zeros such as "007", stays text. Names that
are not valid identifiers are reachable through `values['Unit Price']`, and
`raw['price']` always holds the stored text unchanged.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from jinja2 import StrictUndefined, TemplateError, Undefined
from jinja2.sandbox import SandboxedEnvironment

from automation.application.interfaces.services import IExpressionEvaluator
from automation.domain.exceptions import ExpressionEvaluationException

# Optional minus, no leading zeros except a lone 0, optional fraction.
_DECIMAL = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?")


def _coerce(value: str | None) -> Any:
    if value is None or not _DECIMAL.fullmatch(value):
        return value
    return float(value) if "." in value else int(value)


def _format(result: Any) -> str | None:
    if result is None:
        return None
    if isinstance(result, bool):
        return "true" if result else "false"
    if isinstance(result, float) and result.is_integer():
        return str(int(result))
    return str(result)


class JinjaExpressionEvaluator:
    """Sandboxed Jinja2 expression evaluator (compiled expressions are cached)."""

    def __init__(self) -> None:
        self._env = SandboxedEnvironment(autoescape=False, undefined=StrictUndefined)
        self._compiled: dict[str, Callable[..., Any]] = {}

    def evaluate(self, formula: str, values: Mapping[str, str | None]) -> str | None:
        coerced = {name: _coerce(value) for name, value in values.items()}
        context = {name: v for name, v in coerced.items() if name.isidentifier()}
        context["values"] = coerced
        context["raw"] = dict(values)
        try:
            expression = self._compiled.get(formula)
            if expression is None:
                expression = self._env.compile_expression(
                    formula, undefined_to_none=False
                )
                self._compiled[formula] = expression
            result = expression(**context)
        except (TemplateError, ArithmeticError, TypeError, ValueError) as e:
            raise ExpressionEvaluationException(formula, str(e)) from e
        if isinstance(result, Undefined):
            raise ExpressionEvaluationException(formula, "expression is undefined")
        return _format(result)


class PassthroughExpressionEvaluator:
    """Returns the formula text unchanged (legacy CALCULATE behaviour)."""

    def evaluate(self, formula: str, values: Mapping[str, str | None]) -> str | None:
        return formula


EVALUATORS: dict[str, Callable[[], IExpressionEvaluator]] = {
    "jinja": JinjaExpressionEvaluator,
    "passthrough": PassthroughExpressionEvaluator,
}


def build_expression_evaluator(name: str) -> IExpressionEvaluator:
    """Return the evaluator registered under `name` (CALCULATE_EVALUATOR setting)."""
    try:
        factory = EVALUATORS[name.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown calculate evaluator {name!r}; expected one of {sorted(EVALUATORS)}"
        ) from None
    return factory()
