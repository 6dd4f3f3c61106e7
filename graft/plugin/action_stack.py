"""
Action Stack - Sequential executor with automatic rollback.

This module provides all-or-nothing execution of paired operations.

Key features:
- Actions pair a forward operation with its reverse, arguments bound at creation
- Strictly sequential processing; async operations are awaited in place
- On the first forward failure every committed action is reversed, newest first
- Reversal failures are reported to the event sink and never replace the
  triggering error
"""

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from graft.core.event_bus import EventBus


class ActionStackError(Exception):
    """Base exception for action stack errors."""

    pass


@dataclass(frozen=True)
class Action:
    """
    A paired forward/reverse operation.

    Attributes:
        handler: Forward operation
        handler_args: Arguments bound to the forward operation
        reverter: Reverse operation
        reverter_args: Arguments bound to the reverse operation
    """

    handler: Callable
    handler_args: tuple[Any, ...]
    reverter: Callable
    reverter_args: tuple[Any, ...]

    async def run(self) -> None:
        """Invoke the forward operation, awaiting it if it is asynchronous."""
        await _invoke(self.handler, self.handler_args)

    async def revert(self) -> None:
        """Invoke the reverse operation, awaiting it if it is asynchronous."""
        await _invoke(self.reverter, self.reverter_args)


async def _invoke(fn: Callable, args: tuple[Any, ...]) -> None:
    result = fn(*args)
    if inspect.isawaitable(result):
        await result


class ActionStack:
    """
    Single-shot executor for a batch of actions.

    Push every action first, then call process() once. If any forward
    operation raises, the already-completed actions are reverted in reverse
    order and the original exception is re-raised.

    Example:
        stack = ActionStack(events)
        stack.push(stack.create_action(copy, [src, dest], remove, [dest]))
        await stack.process('ios', project_root)
    """

    def __init__(self, events: EventBus | None = None):
        """
        Initialize ActionStack.

        Args:
            events: Event sink for progress and reversal diagnostics
        """
        self._events = events or EventBus()
        self._pushed: list[Action] = []
        self._committed: list[Action] = []
        self._processed = False

    @staticmethod
    def create_action(
        handler: Callable,
        handler_args: list[Any] | tuple[Any, ...],
        reverter: Callable,
        reverter_args: list[Any] | tuple[Any, ...],
    ) -> Action:
        """
        Build an Action with its arguments fixed now.

        The argument sequences are copied into tuples, so later changes to
        the caller's lists do not reach the action.

        Args:
            handler: Forward operation
            handler_args: Forward arguments
            reverter: Reverse operation
            reverter_args: Reverse arguments

        Returns:
            Immutable Action
        """
        return Action(
            handler=handler,
            handler_args=tuple(handler_args),
            reverter=reverter,
            reverter_args=tuple(reverter_args),
        )

    def push(self, action: Action) -> None:
        """
        Append an action to the pending queue.

        Raises:
            ActionStackError: If process() has already been called
        """
        if self._processed:
            raise ActionStackError("Cannot push onto an action stack that was already processed")
        self._pushed.append(action)

    @property
    def pushed(self) -> tuple[Action, ...]:
        return tuple(self._pushed)

    @property
    def committed(self) -> tuple[Action, ...]:
        """Actions whose forward operation completed (always a prefix of pushed)."""
        return tuple(self._committed)

    async def process(self, platform: str, project_root: Path | str) -> None:
        """
        Run every pushed action in push order.

        Args:
            platform: Platform name (diagnostics only)
            project_root: Project directory (diagnostics only)

        Raises:
            ActionStackError: If called more than once
            Exception: The first forward failure, after all committed actions
                have been reverted
        """
        if self._processed:
            raise ActionStackError("Action stack can only be processed once")
        self._processed = True

        self._events.emit(
            "verbose",
            f"Beginning processing of action stack for {platform} project at {project_root}...",
        )

        for action in self._pushed:
            try:
                await action.run()
            except BaseException as error:
                self._events.emit("verbose", f"Action failed (reverting previous actions): {error}")
                await self._revert_committed()
                raise
            self._committed.append(action)

        self._events.emit("verbose", "Action stack processing complete.")

    async def _revert_committed(self) -> None:
        """Revert committed actions newest first; reversal errors are only logged."""
        while self._committed:
            action = self._committed.pop()
            try:
                await action.revert()
            except Exception as e:
                self._events.emit(
                    "warn",
                    f"Error during reversion of action ({getattr(action.reverter, '__name__', action.reverter)}): {e}",
                )
