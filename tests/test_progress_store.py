from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from constants.keys import StorageKeys
from state.autosave import (
    FileStorage,
    ProgressSnapshot,
    ProgressStore,
    apply_snapshot,
    build_snapshot,
)
from state.runtime import WizardRuntimeState

_TOKEN = "visitor-alice-0001"


def _state(**overrides: object) -> WizardRuntimeState:
    state = WizardRuntimeState()
    for name, value in overrides.items():
        setattr(state, name, value)
    return state


def test_snapshot_round_trip_through_store() -> None:
    storage: dict[str, str] = {}
    store = ProgressStore(storage, _TOKEN)
    state = _state(form_data={"name": "Ada", "agree": True}, current_step_index=2, captured_lead_id=77)

    assert store.save("club", build_snapshot(state, saved_at=1_700_000_000_000))
    loaded = store.load("club")

    assert loaded == ProgressSnapshot(
        form_data={"name": "Ada", "agree": True},
        step_index=2,
        captured_lead_id=77,
        user_opted_for_partial_payment=False,
        saved_at=1_700_000_000_000,
    )


def test_snapshot_is_stored_with_camel_case_keys() -> None:
    storage: dict[str, str] = {}
    ProgressStore(storage, _TOKEN).save("club", build_snapshot(_state(form_data={"name": "Ada"}), saved_at=5))

    payload = json.loads(storage[StorageKeys.progress("club", _TOKEN)])

    assert payload == {
        "formData": {"name": "Ada"},
        "stepIndex": 0,
        "capturedLeadId": None,
        "userOptedForPartialPayment": False,
        "savedAt": 5,
    }


def test_blank_session_is_not_saved() -> None:
    storage: dict[str, str] = {}

    saved = ProgressStore(storage, _TOKEN).save("club", build_snapshot(_state(form_data={"name": "", "agree": False})))

    assert not saved
    assert storage == {}


def test_blank_form_with_lead_is_saved() -> None:
    storage: dict[str, str] = {}

    assert ProgressStore(storage, _TOKEN).save("club", build_snapshot(_state(captured_lead_id=3)))


def test_missing_timestamp_is_filled_on_save() -> None:
    storage: dict[str, str] = {}
    store = ProgressStore(storage, _TOKEN)

    store.save("club", ProgressSnapshot(form_data={"name": "Ada"}))

    assert store.load("club").saved_at > 0


def test_unreadable_progress_is_discarded(caplog: pytest.LogCaptureFixture) -> None:
    storage = {StorageKeys.progress("club", _TOKEN): '{"formData": "not-a-dict"}'}
    caplog.set_level(logging.WARNING)

    assert ProgressStore(storage, _TOKEN).load("club") is None
    assert "Discarding unreadable progress" in caplog.text


def test_clear_is_idempotent() -> None:
    storage: dict[str, str] = {}
    store = ProgressStore(storage, _TOKEN)
    store.save("club", build_snapshot(_state(form_data={"name": "Ada"})))

    store.clear("club")
    store.clear("club")

    assert store.load("club") is None


def test_keys_are_scoped_per_application() -> None:
    storage: dict[str, str] = {}
    store = ProgressStore(storage, _TOKEN)
    store.save("club", build_snapshot(_state(form_data={"name": "Ada"})))

    assert store.load("other-club") is None


def test_apply_snapshot_restores_persisted_subset() -> None:
    state = _state(touched_fields={"x"})
    snapshot = ProgressSnapshot(form_data={"name": "Ada"}, step_index=3, captured_lead_id=9, user_opted_for_partial_payment=True)

    apply_snapshot(state, snapshot)

    assert state.form_data == {"name": "Ada"}
    assert state.current_step_index == 3
    assert state.captured_lead_id == 9
    assert state.user_opted_for_partial_payment is True
    assert state.touched_fields == {"x"}


def test_apply_snapshot_can_keep_step() -> None:
    state = _state(current_step_index=1)

    apply_snapshot(state, ProgressSnapshot(form_data={"a": "b"}, step_index=4), restore_step=False)

    assert state.current_step_index == 1


def test_file_storage_persists_across_instances(tmp_path: Path) -> None:
    first = FileStorage(tmp_path / "progress")
    ProgressStore(first, _TOKEN).save("club/alpha", build_snapshot(_state(form_data={"name": "Ada"})))

    second = ProgressStore(FileStorage(tmp_path / "progress"), _TOKEN)

    assert second.load("club/alpha").form_data == {"name": "Ada"}
    assert len(first) == 1
    assert not list((tmp_path / "progress").glob("*.tmp"))


def test_visitors_sharing_a_directory_never_see_each_other(tmp_path: Path) -> None:
    shared = FileStorage(tmp_path / "progress")
    alice = ProgressStore(shared, _TOKEN)
    bob = ProgressStore(shared, "visitor-bob-000002")
    alice.save("club", build_snapshot(_state(form_data={"full_name": "Alice Secret"})))

    assert bob.load("club") is None

    bob.save("club", build_snapshot(_state(form_data={"full_name": "Bob"})))
    bob.clear("club")

    assert alice.load("club").form_data == {"full_name": "Alice Secret"}


def test_file_storage_missing_key(tmp_path: Path) -> None:
    storage = FileStorage(tmp_path / "never-created")

    assert storage.get("nothing") is None
    assert list(storage) == []
    with pytest.raises(KeyError):
        del storage["nothing"]
