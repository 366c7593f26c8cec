"""User-facing notifications raised by navigation and step handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, MutableMapping, Protocol

import streamlit as st

NotificationVariant = Literal["default", "destructive"]


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: NotificationVariant = "default"


class Notifier(Protocol):
    def notify(self, title: str, description: str, variant: NotificationVariant = "default") -> None:
        """Report an outcome to the user."""


class SessionNotifier:
    """Queue notifications in session state so they survive ``st.rerun``."""

    def __init__(self, session_state: MutableMapping[str, object], key: str) -> None:
        self._session_state = session_state
        self._key = key

    def _queue(self) -> list[Notification]:
        queue = self._session_state.get(self._key)
        if not isinstance(queue, list):
            queue = []
            self._session_state[self._key] = queue
        return queue

    def notify(self, title: str, description: str, variant: NotificationVariant = "default") -> None:
        self._queue().append(Notification(title, description, variant))

    def drain(self) -> list[Notification]:
        pending = list(self._queue())
        self._session_state[self._key] = []
        return pending

    def render(self) -> None:
        """Show and clear every queued notification."""

        for note in self.drain():
            if note.variant == "destructive":
                st.error(f"**{note.title}** {note.description}")
            else:
                st.toast(f"**{note.title}** {note.description}")


__all__ = ["Notification", "NotificationVariant", "Notifier", "SessionNotifier"]
