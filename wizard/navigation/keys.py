from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WizardSessionKeys:
    """Namespaced session-state keys for one application's wizard."""

    application_slug: str

    @property
    def prefix(self) -> str:
        return f"wiz:{self.application_slug}:"

    def namespace(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @property
    def runtime_state(self) -> str:
        return self.namespace("runtime_state")

    @property
    def notifications(self) -> str:
        return self.namespace("notifications")

    @property
    def resume_token(self) -> str:
        return self.namespace("resume_token")

    @property
    def resumed(self) -> str:
        return self.namespace("resumed")

    @property
    def redirect_url(self) -> str:
        return self.namespace("redirect_url")

    @property
    def last_outcome(self) -> str:
        return self.namespace("last_outcome")
