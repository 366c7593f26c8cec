class UIKeys:
    """Keys for UI widgets in ``st.session_state``."""

    FIELD_PREFIX = "ui.field."
    NAV_NEXT = "ui.nav.next"
    NAV_PREVIOUS = "ui.nav.previous"
    START_OVER_CONFIRM = "ui.start_over.confirm"
    PARTIAL_PAYMENT_OPT_IN = "ui.checkout.partial_payment"
    APPLICATION_SUBMIT = "ui.application.submit"


class StateKeys:
    """Keys for data stored in ``st.session_state``."""

    APPLICATION = "application.item"
    FOCUS_SCRIPT_NONCE = "ui.focus_nonce"


class StorageKeys:
    """Keys for values persisted across page loads and redirects."""

    PROGRESS_PREFIX = "application_progress_"
    PAYMENT_STASH_PREFIX = "application_payment_stash_"

    # One entry per application and visitor; the resume token identifies the browser.
    @classmethod
    def progress(cls, app_id: str, resume_token: str) -> str:
        return f"{cls.PROGRESS_PREFIX}{app_id}.{resume_token}"

    @classmethod
    def payment_stash(cls, app_id: str, resume_token: str) -> str:
        return f"{cls.PAYMENT_STASH_PREFIX}{app_id}.{resume_token}"
