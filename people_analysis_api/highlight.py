"""
Shared highlight state.

The results list and the image overlay both read the highlighted person from
one HighlightCoordinator, so they can never disagree. Hovering in either view
writes to it; the last write wins.
"""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

HighlightListener = Callable[[Optional[int]], None]


class HighlightCoordinator:
    """Holds at most one highlighted person id."""

    def __init__(self):
        self._highlighted_id: Optional[int] = None
        self._listeners: list[HighlightListener] = []

    @property
    def highlighted_id(self) -> Optional[int]:
        return self._highlighted_id

    def is_highlighted(self, person_id: int) -> bool:
        return self._highlighted_id is not None and self._highlighted_id == person_id

    def set_highlight(self, person_id: Optional[int]) -> None:
        """Highlight ``person_id``, or clear the highlight with None."""
        if person_id == self._highlighted_id:
            return
        self._highlighted_id = person_id
        logger.debug(f"Highlight changed to {person_id}")
        for listener in list(self._listeners):
            listener(person_id)

    def clear(self) -> None:
        self.set_highlight(None)

    def subscribe(self, listener: HighlightListener) -> Callable[[], None]:
        """
        Register ``listener`` to be called with the new id on every change.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
