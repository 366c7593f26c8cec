"""Session state utilities."""

from .autosave import FileStorage, ProgressSnapshot, ProgressStore
from .payment_stash import PaymentStash, PaymentStashRecord
from .runtime import WizardRuntimeState, get_runtime_state

__all__ = [
    "FileStorage",
    "PaymentStash",
    "PaymentStashRecord",
    "ProgressSnapshot",
    "ProgressStore",
    "WizardRuntimeState",
    "get_runtime_state",
]
