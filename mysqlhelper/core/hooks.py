"""Named hook stages run around statement execution and table mutations."""

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from mysqlhelper.exceptions import InvalidHookStageError
from mysqlhelper.utils.logging import get_logger

if TYPE_CHECKING:
    from mysqlhelper.core.result import QueryResult
    from mysqlhelper.core.statement import Statement

__all__ = (
    "AfterQueryContext",
    "BeforeQueryContext",
    "ErrorContext",
    "HookCallback",
    "HookPipeline",
    "HookStage",
    "MutationContext",
)

logger = get_logger("core.hooks")


class HookStage(str, Enum):
    """Points in the execution lifecycle where callbacks run."""

    BEFORE_QUERY = "before_query"
    AFTER_QUERY = "after_query"
    ON_ERROR = "on_error"
    BEFORE_MUTATE = "before_mutate"
    AFTER_MUTATE = "after_mutate"

    def __str__(self) -> str:
        return self.value


_STAGE_ALIASES: "Mapping[str, HookStage]" = {
    "beforeQuery": HookStage.BEFORE_QUERY,
    "afterQuery": HookStage.AFTER_QUERY,
    "onError": HookStage.ON_ERROR,
    "beforeMutate": HookStage.BEFORE_MUTATE,
    "afterMutate": HookStage.AFTER_MUTATE,
}


@dataclass(slots=True)
class BeforeQueryContext:
    statement: "Statement"
    issued_at: float


@dataclass(slots=True)
class AfterQueryContext:
    statement: "Statement"
    result: "QueryResult"
    execution_time: float


@dataclass(slots=True)
class ErrorContext:
    statement: "Statement"
    error: BaseException


@dataclass(slots=True)
class MutationContext:
    """Payload of the mutate stages; ``result`` is only set for ``after_mutate``."""

    operation: str
    table: str
    data: Any = None
    where: "Optional[Mapping[str, Any]]" = None
    result: Any = None


HookCallback = Callable[[Any], Union[Awaitable[None], None]]


def resolve_stage(stage: "Union[HookStage, str]") -> HookStage:
    """Resolve a stage given as enum member, snake_case value or camelCase alias.

    Raises:
        InvalidHookStageError: If the stage does not exist.
    """
    if isinstance(stage, HookStage):
        return stage
    if isinstance(stage, str):
        if stage in _STAGE_ALIASES:
            return _STAGE_ALIASES[stage]
        try:
            return HookStage(stage)
        except ValueError:
            pass
    raise InvalidHookStageError(stage)


class HookPipeline:
    """Per-stage ordered callback lists.

    Callbacks of one stage run strictly one after the other in registration
    order; each is awaited before the next starts.
    """

    __slots__ = ("_hooks",)

    def __init__(self) -> None:
        self._hooks: dict[HookStage, list[HookCallback]] = {stage: [] for stage in HookStage}

    def add(self, stage: "Union[HookStage, str]", callback: HookCallback) -> None:
        resolved = resolve_stage(stage)
        if not callable(callback):
            msg = f"Hook callback for {resolved} must be callable, got {type(callback).__name__}"
            raise TypeError(msg)
        self._hooks[resolved].append(callback)

    def remove(self, stage: "Union[HookStage, str]", callback: HookCallback) -> None:
        resolved = resolve_stage(stage)
        self._hooks[resolved] = [registered for registered in self._hooks[resolved] if registered is not callback]

    def callbacks(self, stage: "Union[HookStage, str]") -> tuple[HookCallback, ...]:
        return tuple(self._hooks[resolve_stage(stage)])

    def has_hooks(self, stage: HookStage) -> bool:
        return bool(self._hooks[stage])

    async def run(self, stage: HookStage, context: Any) -> None:
        """Run every callback of ``stage``; the first failure propagates."""
        for callback in tuple(self._hooks[stage]):
            outcome = callback(context)
            if inspect.isawaitable(outcome):
                await outcome

    async def run_error_hooks(self, context: ErrorContext) -> None:
        """Run the ``on_error`` stage without letting a failing hook mask ``context.error``."""
        for callback in tuple(self._hooks[HookStage.ON_ERROR]):
            try:
                outcome = callback(context)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(
                    "on_error hook %r failed while handling %s", callback, type(context.error).__name__
                )

    def clear(self) -> None:
        for stage in self._hooks:
            self._hooks[stage].clear()
