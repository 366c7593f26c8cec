from __future__ import annotations

import logging

import pytest

from constants.keys import StorageKeys
from state.payment_stash import PaymentStash, PaymentStashRecord

_TOKEN = "visitor-alice-0001"


def _record(**overrides: object) -> PaymentStashRecord:
    values: dict[str, object] = {
        "form_data": {"name": "Ada"},
        "application_id": 42,
        "application_slug": "club",
        "step_index": 1,
    }
    values.update(overrides)
    return PaymentStashRecord(**values)


def test_take_returns_record_once() -> None:
    storage: dict[str, str] = {}
    stash = PaymentStash(storage, _TOKEN)
    stash.save(_record(submitted_application_id=900, captured_lead_id=5))

    first = stash.take("club")
    second = stash.take("club")

    assert first is not None
    assert first.form_data == {"name": "Ada"}
    assert first.submitted_application_id == 900
    assert first.captured_lead_id == 5
    assert second is None
    assert storage == {}


def test_records_are_keyed_by_slug() -> None:
    storage: dict[str, str] = {}
    stash = PaymentStash(storage, _TOKEN)
    stash.save(_record())

    assert StorageKeys.payment_stash("club", _TOKEN) in storage
    assert stash.load("other") is None


def test_unreadable_stash_is_ignored(caplog: pytest.LogCaptureFixture) -> None:
    storage = {StorageKeys.payment_stash("club", _TOKEN): '{"formData": {}}'}
    caplog.set_level(logging.WARNING)

    assert PaymentStash(storage, _TOKEN).take("club") is None
    assert storage == {}
    assert "unreadable payment stash" in caplog.text


def test_concurrent_checkouts_keep_separate_stashes() -> None:
    storage: dict[str, str] = {}
    alice = PaymentStash(storage, _TOKEN)
    bob = PaymentStash(storage, "visitor-bob-000002")
    alice.save(_record(form_data={"name": "Alice"}))
    bob.save(_record(form_data={"name": "Bob"}))

    assert alice.take("club").form_data == {"name": "Alice"}
    assert bob.take("club").form_data == {"name": "Bob"}
