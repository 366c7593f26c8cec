"""Step navigation for the application wizard."""

from __future__ import annotations

from wizard.navigation.keys import WizardSessionKeys
from wizard.navigation.router import FOCUS_FIRST_CONTROL, PaymentReturn, WizardNavigator, parse_payment_return

__all__ = [
    "FOCUS_FIRST_CONTROL",
    "PaymentReturn",
    "WizardNavigator",
    "WizardSessionKeys",
    "parse_payment_return",
]
