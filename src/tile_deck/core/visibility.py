"""Page visibility and focus signals consumed by the refresh scheduler."""

from typing import Callable, List, Protocol

VisibilityListener = Callable[[bool], None]
FocusListener = Callable[[], None]
Unsubscribe = Callable[[], None]


class PageVisibilitySource(Protocol):
    """Host window signals: is the page visible, did it change, did it gain focus."""

    def is_visible(self) -> bool: ...

    def on_visibility_change(self, listener: VisibilityListener) -> Unsubscribe: ...

    def on_focus(self, listener: FocusListener) -> Unsubscribe: ...


def _remover(listeners: list, listener) -> Unsubscribe:
    def unsubscribe():
        if listener in listeners:
            listeners.remove(listener)

    return unsubscribe


class ManualVisibilitySource:
    """Visibility source driven by explicit calls.

    Used by the CLI (always visible) and by tests to simulate a tab being
    hidden, shown or focused.
    """

    def __init__(self, visible: bool = True):
        self._visible = visible
        self._visibility_listeners: List[VisibilityListener] = []
        self._focus_listeners: List[FocusListener] = []

    def is_visible(self) -> bool:
        return self._visible

    def on_visibility_change(self, listener: VisibilityListener) -> Unsubscribe:
        self._visibility_listeners.append(listener)
        return _remover(self._visibility_listeners, listener)

    def on_focus(self, listener: FocusListener) -> Unsubscribe:
        self._focus_listeners.append(listener)
        return _remover(self._focus_listeners, listener)

    def set_visible(self, visible: bool):
        """Change visibility and notify listeners if it actually changed."""
        if visible == self._visible:
            return
        self._visible = visible
        for listener in list(self._visibility_listeners):
            listener(visible)

    def focus(self):
        for listener in list(self._focus_listeners):
            listener()

    @property
    def listener_count(self) -> int:
        return len(self._visibility_listeners) + len(self._focus_listeners)
