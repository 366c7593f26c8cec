"""Transient form snapshot kept while the user is away at the payment provider."""

from __future__ import annotations

import logging
from typing import MutableMapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from constants.keys import StorageKeys
from models.wizard_config import FormValue

logger = logging.getLogger(__name__)


class PaymentStashRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    form_data: dict[str, FormValue] = Field(default_factory=dict)
    application_id: int
    application_slug: str
    step_index: int = 0
    submitted_application_id: Optional[int] = None
    captured_lead_id: Optional[int] = None
    user_opted_for_partial_payment: bool = False


class PaymentStash:
    """Write before redirecting to checkout, read back once on return.

    Records are scoped to the visitor holding ``resume_token``.
    """

    def __init__(self, storage: MutableMapping[str, str], resume_token: str) -> None:
        self._storage = storage
        self._resume_token = resume_token

    def _key(self, application_slug: str) -> str:
        return StorageKeys.payment_stash(application_slug, self._resume_token)

    def save(self, record: PaymentStashRecord) -> None:
        self._storage[self._key(record.application_slug)] = record.model_dump_json(by_alias=True)
        logger.debug(
            "Stashed form data for '%s' at step %s before checkout",
            record.application_slug,
            record.step_index,
        )

    def load(self, application_slug: str) -> PaymentStashRecord | None:
        raw = self._storage.get(self._key(application_slug))
        if not raw:
            return None
        try:
            return PaymentStashRecord.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable payment stash for '%s': %s", application_slug, exc)
            return None

    def clear(self, application_slug: str) -> None:
        self._storage.pop(self._key(application_slug), None)

    def take(self, application_slug: str) -> PaymentStashRecord | None:
        """Return the stashed record and remove it."""

        record = self.load(application_slug)
        self.clear(application_slug)
        return record


__all__ = ["PaymentStash", "PaymentStashRecord"]
