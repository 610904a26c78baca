from collections import defaultdict
import logging
from typing import Callable, DefaultDict, Iterable, List, Type


logger = logging.getLogger(__name__)

Handler = Callable[[object], None]


class EventBus:
    """Synchronous in-process dispatch of domain events.

    Handlers run in priority order (lower first, then subscription order). A
    failing handler is logged and skipped.
    """

    def __init__(self) -> None:
        self._subscribers: DefaultDict[Type[object], List[tuple[int, int, Handler]]] = defaultdict(list)
        self._next_order = 0
        self._last_publish_errors: List[Exception] = []

    def subscribe(self, event_type: Type[object], handler: Handler, *, priority: int = 100) -> None:
        self._subscribers[event_type].append((int(priority), self._next_order, handler))
        self._next_order += 1
        self._subscribers[event_type].sort(key=lambda row: (row[0], row[1]))

    def unsubscribe(self, event_type: Type[object], handler: Handler) -> None:
        self._subscribers[event_type] = [row for row in self._subscribers[event_type] if row[2] is not handler]

    def publish(self, event: object) -> None:
        self._last_publish_errors = []
        self._dispatch(event)

    def publish_all(self, events: Iterable[object]) -> None:
        self._last_publish_errors = []
        for event in events:
            self._dispatch(event)

    def _dispatch(self, event: object) -> None:
        event_type = type(event)
        for priority, _, handler in list(self._subscribers[event_type]):
            try:
                handler(event)
            except Exception as exc:
                self._last_publish_errors.append(exc)
                logger.exception(
                    "Event handler failed and was isolated",
                    extra={
                        "event_type": event_type.__name__,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                        "priority": priority,
                    },
                )

    def last_publish_errors(self) -> List[Exception]:
        return list(self._last_publish_errors)
