"""Session-scoped keyboard listeners."""
import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

KeyListener = Callable[[str, bool], bool]

ENTER = "Enter"
SPACE = " "
GRADE_KEYS = ("1", "2", "3", "4")


class KeyboardRouter:
    """Dispatches key presses to registered listeners, newest first."""

    def __init__(self):
        self._listeners: List[KeyListener] = []

    def add_listener(self, listener: KeyListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: KeyListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def dispatch(self, key: str, repeat: bool = False) -> bool:
        """Return True when a listener handled the key."""
        for listener in reversed(self._listeners):
            if listener(key, repeat):
                logger.debug(f"Key {key!r} handled by {listener!r}")
                return True
        return False
