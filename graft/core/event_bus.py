"""
Event Bus - Diagnostic event sink passed explicitly into every component.

This module implements:
1. Exact-id consumers: called with the message only
2. Pattern consumers: glob pattern over dotted ids, called with (src, message)
3. Leveled logging helpers: emit('warn', ...) dispatches 'log.warn'

All consumers support:
- Priority-based execution (higher priority = earlier execution)
- Registration order as tie-breaker
- Failure isolation (a failing consumer never interrupts dispatch)
"""

import inspect
import re
import warnings
from collections.abc import Callable
from dataclasses import dataclass

LOG_LEVELS = ("verbose", "info", "warn", "results")


class EventBusError(Exception):
    """Base exception for event bus errors."""

    pass


class RegistrationError(EventBusError):
    """Raised when consumer registration fails."""

    pass


@dataclass
class Handler:
    """
    Represents a registered event consumer.

    Attributes:
        callback: The consumer function
        priority: Higher priority executes first
        registration_order: Tie-breaker for same priority (lower = earlier)
        requires_src: Whether consumer expects 'src' parameter (pattern variants)
    """

    callback: Callable
    priority: int
    registration_order: int
    requires_src: bool = False

    def __call__(self, event_id: str, message: str) -> None:
        """Execute the consumer."""
        if self.requires_src:
            self.callback(event_id, message)
        else:
            self.callback(message)


class EventBus:
    """
    Event sink for diagnostics.

    One instance is created at process start and handed to the components
    that report progress; with no consumers registered events are dropped.
    """

    def __init__(self):
        self._exact_routes: dict[str, list[Handler]] = {}
        self._pattern_routes: list[tuple[re.Pattern, Handler]] = []
        self._registration_counter = 0

    def _next_registration_order(self) -> int:
        """Get next registration order number."""
        order = self._registration_counter
        self._registration_counter += 1
        return order

    def _glob_to_regex(self, pattern: str) -> re.Pattern:
        """
        Convert glob pattern to compiled regex.

        * matches any characters within a segment (not across dots).
        """
        escaped = re.escape(pattern)
        regex_pattern = escaped.replace(r"\*", "[^.]*")
        return re.compile(f"^{regex_pattern}$")

    def register_event_consumer(
        self, event_id: str, callback: Callable, priority: int = 0
    ) -> None:
        """
        Register a consumer for exact event ID match.

        Args:
            event_id: Exact event ID to match (e.g. 'log.warn')
            callback: Consumer function taking (message: str)
            priority: Execution priority (higher = earlier)
        """
        handler = Handler(
            callback=callback,
            priority=priority,
            registration_order=self._next_registration_order(),
        )
        self._exact_routes.setdefault(event_id, []).append(handler)

    def register_event_consumer_re(
        self, pattern: str, callback: Callable, priority: int = 0
    ) -> None:
        """
        Register a consumer for pattern match.

        Args:
            pattern: Glob pattern to match event IDs (e.g. 'log.*')
            callback: Consumer function taking (src: str, message: str)
            priority: Execution priority (higher = earlier)

        Raises:
            RegistrationError: If callback doesn't accept 'src' parameter
        """
        params = list(inspect.signature(callback).parameters.keys())
        if len(params) < 1 or params[0] != "src":
            raise RegistrationError(
                f"Pattern-based consumer must have 'src' as first parameter. "
                f"Got: {params}"
            )

        handler = Handler(
            callback=callback,
            priority=priority,
            registration_order=self._next_registration_order(),
            requires_src=True,
        )
        self._pattern_routes.append((self._glob_to_regex(pattern), handler))

    def _find_handlers(self, event_id: str) -> list[Handler]:
        """Find all consumers matching the event ID, sorted by priority."""
        handlers = list(self._exact_routes.get(event_id, []))
        for pattern, handler in self._pattern_routes:
            if pattern.match(event_id):
                handlers.append(handler)
        return sorted(handlers, key=lambda h: (-h.priority, h.registration_order))

    def dispatch_event(self, event_id: str, message: str) -> None:
        """
        Dispatch an event to every matching consumer.

        Args:
            event_id: The event identifier
            message: Human-readable payload
        """
        for handler in self._find_handlers(event_id):
            try:
                handler(event_id, message)
            except Exception as e:
                warnings.warn(
                    f"Event consumer failed for '{event_id}': {e}",
                    RuntimeWarning,
                    stacklevel=2,
                )

    def emit(self, level: str, message: str) -> None:
        """
        Dispatch a log event.

        Args:
            level: One of 'verbose', 'info', 'warn', 'results'
            message: Log line

        Raises:
            EventBusError: If level is unknown
        """
        if level not in LOG_LEVELS:
            raise EventBusError(f"Unknown log level: {level}")
        self.dispatch_event(f"log.{level}", message)
