"""Application-wide UI context (theme), created once at startup."""

import threading
from typing import Callable, List

from fastapi import Request

from sitewriter.core.errors import ValidationError

THEMES = ("light", "dark", "system")


class AppContext:
    """Holds the active theme and notifies subscribers when it changes."""

    def __init__(self, theme: str = "system"):
        if theme not in THEMES:
            raise ValidationError(f"Unknown theme: {theme}")
        self._theme = theme
        self._listeners: List[Callable[[str], None]] = []
        self._lock = threading.Lock()

    @property
    def theme(self) -> str:
        return self._theme

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValidationError(f"Unknown theme: {theme}", details={"allowed": list(THEMES)})
        with self._lock:
            self._theme = theme
            listeners = list(self._listeners)
        for listener in listeners:
            listener(theme)

    def subscribe(self, listener: Callable[[str], None]) -> None:
        with self._lock:
            self._listeners.append(listener)


def get_app_context(request: Request) -> AppContext:
    return request.app.state.app_context
