# backend/services/events.py
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartChanged:
    """Published after every committed cart mutation.

    ``item_count`` is the total quantity left in the user's cart, which is what
    badge counters display.
    """
    user_id: int
    action: str  # "added" | "updated" | "removed" | "cleared"
    item_count: int


CartListener = Callable[[CartChanged], None]


class CartEvents:
    """Explicit subscription point for cart changes, owned by the cart manager."""

    def __init__(self):
        self._listeners: List[CartListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: CartChanged) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            # A failing listener must not undo a committed cart change
            try:
                listener(event)
            except Exception:
                logger.exception("Cart listener %r failed for %s", listener, event)
