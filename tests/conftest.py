from __future__ import annotations

from pathlib import Path
import sys
from typing import Callable

import streamlit as st

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import Settings  # noqa: E402
from state.autosave import ProgressStore  # noqa: E402
from state.payment_stash import PaymentStash  # noqa: E402
from state.runtime import WizardRuntimeState  # noqa: E402
from support import RESUME_TOKEN, FakeServices, ListNotifier, WizardHarness  # noqa: E402
from models.application import ApplicationItem  # noqa: E402
from wizard.navigation.router import WizardNavigator  # noqa: E402
from wizard.steps.base import StepContext  # noqa: E402
from wizard.steps.dispatcher import StepDispatcher  # noqa: E402


class _SessionDict(dict[str, object]):
    """Lightweight replacement for ``st.session_state`` during tests."""


class _QueryParamStore(dict[str, str]):
    """Plain stand-in for ``st.query_params``."""

    def get_all(self, key: str) -> list[str]:
        return [self[key]] if key in self else []


@pytest.fixture(autouse=True)
def _stub_streamlit_session_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Replace Streamlit's runtime-bound session state with a plain dictionary."""

    monkeypatch.setattr(st, "session_state", _SessionDict(), raising=False)
    monkeypatch.setattr(st, "query_params", _QueryParamStore(), raising=False)
    yield


@pytest.fixture
def settings() -> Settings:
    return Settings(app_base_url="https://apply.example.org", api_domain="club.example.org")


@pytest.fixture
def harness(settings: Settings) -> Callable[..., WizardHarness]:
    """Factory wiring a navigator, context and dispatcher around fakes."""

    def _build(
        application: ApplicationItem,
        *,
        storage: dict[str, str] | None = None,
        state: WizardRuntimeState | None = None,
        fakes: FakeServices | None = None,
    ) -> WizardHarness:
        storage = storage if storage is not None else {}
        state = state or WizardRuntimeState()
        fakes = fakes or FakeServices()
        notifier = ListNotifier()
        navigator = WizardNavigator(
            application=application,
            state=state,
            progress_store=ProgressStore(storage, RESUME_TOKEN),
            payment_stash=PaymentStash(storage, RESUME_TOKEN),
            notifier=notifier,
        )
        ctx = StepContext(
            application=application,
            navigator=navigator,
            services=fakes.bundle(),
            notifier=notifier,
            settings=settings,
        )
        return WizardHarness(
            application=application,
            state=state,
            storage=storage,
            notifier=notifier,
            fakes=fakes,
            navigator=navigator,
            ctx=ctx,
            dispatcher=StepDispatcher(),
        )

    return _build
