"""In-process notification channel for collection events.

Collections receive ``EventChannel.publish`` (or any callable with the same
signature) as a constructor argument instead of reaching for a global bus.
"""
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# Published with the note ID when an edit empties a note and it is deleted
NOTES_REMOVE_EMPTY_NOTE = "notes:removeEmptyNote"

Publish = Callable[[str, Any], None]
Handler = Callable[[Any], None]


def _no_op(event_name: str, payload: Any) -> None:
    pass


class EventChannel:
    """Fire-and-forget publish/subscribe.

    A failing handler is logged and does not stop the other handlers or
    the publisher.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a function that unsubscribes it."""
        self._handlers[event_name].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_name]:
                self._handlers[event_name].remove(handler)

        return unsubscribe

    def publish(self, event_name: str, payload: Any = None) -> None:
        for handler in list(self._handlers.get(event_name, ())):
            try:
                handler(payload)
            except Exception as e:
                logger.warning(f"Handler for '{event_name}' failed: {e}")


no_op_publish: Publish = _no_op
