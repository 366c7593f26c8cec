"""Progress autosave and resume for application wizards."""

from __future__ import annotations

import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Iterator, MutableMapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from models.wizard_config import FormValue
from constants.keys import StorageKeys
from state.runtime import WizardRuntimeState

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class ProgressSnapshot(BaseModel):
    """Serializable subset of the runtime state, keyed by application."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    form_data: dict[str, FormValue] = Field(default_factory=dict)
    step_index: int = 0
    captured_lead_id: Optional[int] = None
    user_opted_for_partial_payment: bool = False
    saved_at: int = 0  # epoch milliseconds

    def is_empty(self) -> bool:
        return not any(value != "" and value is not False for value in self.form_data.values())


def build_snapshot(state: WizardRuntimeState, *, saved_at: int | None = None) -> ProgressSnapshot:
    """Capture the persisted subset of ``state``."""

    return ProgressSnapshot(
        form_data=dict(state.form_data),
        step_index=state.current_step_index,
        captured_lead_id=state.captured_lead_id,
        user_opted_for_partial_payment=state.user_opted_for_partial_payment,
        saved_at=saved_at if saved_at is not None else int(time.time() * 1000),
    )


def apply_snapshot(state: WizardRuntimeState, snapshot: ProgressSnapshot, *, restore_step: bool = True) -> None:
    """Restore form data and session flags from ``snapshot`` into ``state``."""

    if snapshot.form_data:
        state.form_data = dict(snapshot.form_data)
    if snapshot.captured_lead_id:
        state.captured_lead_id = snapshot.captured_lead_id
    state.user_opted_for_partial_payment = snapshot.user_opted_for_partial_payment
    if restore_step:
        state.current_step_index = max(0, snapshot.step_index)


def serialize_snapshot(snapshot: ProgressSnapshot) -> str:
    return snapshot.model_dump_json(by_alias=True)


def parse_snapshot(raw: str | bytes) -> ProgressSnapshot:
    return ProgressSnapshot.model_validate_json(raw)


class FileStorage(MutableMapping[str, str]):
    """String storage with one JSON file per key inside ``directory``."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def __getitem__(self, key: str) -> str:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise KeyError(key) from None

    def __setitem__(self, key: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def __delitem__(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            raise KeyError(key) from None

    def __iter__(self) -> Iterator[str]:
        if not self._directory.is_dir():
            return iter(())
        return iter(sorted(path.stem for path in self._directory.glob("*.json")))

    def __len__(self) -> int:
        return sum(1 for _ in self)


class ProgressStore:
    """Persist, restore and clear progress snapshots per application.

    ``storage`` may be shared by every visitor; ``resume_token`` scopes the
    entries to one browser so visitors never see each other's answers.
    """

    def __init__(self, storage: MutableMapping[str, str], resume_token: str) -> None:
        self._storage = storage
        self._resume_token = resume_token

    @property
    def resume_token(self) -> str:
        return self._resume_token

    def _key(self, app_id: str) -> str:
        return StorageKeys.progress(app_id, self._resume_token)

    def save(self, app_id: str, snapshot: ProgressSnapshot) -> bool:
        """Write ``snapshot``; blank sessions without a captured lead are skipped."""

        if snapshot.is_empty() and not snapshot.captured_lead_id:
            return False
        if not snapshot.saved_at:
            snapshot = snapshot.model_copy(update={"saved_at": int(time.time() * 1000)})
        try:
            self._storage[self._key(app_id)] = serialize_snapshot(snapshot)
        except OSError as exc:
            logger.error("Error saving application progress for '%s': %s", app_id, exc)
            return False
        return True

    def load(self, app_id: str) -> ProgressSnapshot | None:
        raw = self._storage.get(self._key(app_id))
        if not raw:
            return None
        try:
            return parse_snapshot(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable progress for '%s': %s", app_id, exc)
            return None

    def clear(self, app_id: str) -> None:
        self._storage.pop(self._key(app_id), None)


__all__ = [
    "FileStorage",
    "ProgressSnapshot",
    "ProgressStore",
    "apply_snapshot",
    "build_snapshot",
    "parse_snapshot",
    "serialize_snapshot",
]
