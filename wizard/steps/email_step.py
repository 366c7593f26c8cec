"""Automatic notification email step."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from core.errors import DegradedServiceError, ServiceError
from models.services import EmailMessage
from models.wizard_config import EmailConfig, StepType
from wizard.placeholders import replace_placeholders
from wizard.steps.base import StepContext, StepHandler, StepOutcome, StepStatus

logger = logging.getLogger(__name__)

MAX_PARALLEL_SENDS = 8


def split_recipients(raw: str) -> list[str]:
    return [address.strip() for address in raw.split(",") if address.strip()]


def render_messages(config: EmailConfig, ctx: StepContext) -> list[EmailMessage]:
    """One message per recipient, with every template resolved."""

    def _render(template: str) -> str:
        return replace_placeholders(template, ctx.form_data, ctx.placeholder_fallback)

    sender = _render(config.from_)
    subject = _render(config.subject)
    body = _render(config.html_body)
    stream = config.message_stream or "broadcast"
    return [
        EmailMessage(from_=sender, to=recipient, subject=subject, html_body=body, message_stream=stream)
        for recipient in split_recipients(_render(config.to))
    ]


class SendEmailStepHandler(StepHandler):
    step_type = StepType.SEND_EMAIL
    pending_flag = "is_sending_email"

    def enter(self, ctx: StepContext) -> StepOutcome | None:
        step = ctx.step
        if step is None or step.email_config is None:
            return None
        if step.id in ctx.state.email_sent_step_ids:
            return None
        # Marked before sending so a re-render never sends twice.
        ctx.state.email_sent_step_ids.add(step.id)

        messages = render_messages(step.email_config, ctx)
        failures = self._send_all(ctx, messages)
        if failures:
            return StepOutcome(
                StepStatus.ADVANCED,
                error=DegradedServiceError(
                    "Failed to send notification email. Continuing with your application.",
                    title="Email Failed",
                ),
            )
        if len(messages) > 1:
            ctx.notifier.notify("Email Sent", f"Notification emails sent to {len(messages)} recipients.")
        elif messages:
            ctx.notifier.notify("Email Sent", "Notification email has been sent successfully.")
        return StepOutcome(StepStatus.ADVANCED)

    def act(self, ctx: StepContext) -> StepOutcome:
        return StepOutcome(StepStatus.ADVANCED)

    @staticmethod
    def _send_all(ctx: StepContext, messages: list[EmailMessage]) -> list[str]:
        if not messages:
            return []
        failures: list[str] = []
        with ThreadPoolExecutor(max_workers=min(MAX_PARALLEL_SENDS, len(messages))) as executor:
            futures = {executor.submit(ctx.services.email.send, message): message.to for message in messages}
            for future in as_completed(futures):
                recipient = futures[future]
                try:
                    future.result()
                except ServiceError as exc:
                    logger.warning("Email to recipient #%s failed: %s", len(failures) + 1, exc)
                    failures.append(recipient)
                except Exception:  # noqa: BLE001 - one broken send must not stop the flow
                    logger.exception("Unexpected failure sending email to recipient #%s", len(failures) + 1)
                    failures.append(recipient)
        logger.info("Sent %s of %s notification emails", len(messages) - len(failures), len(messages))
        return failures


__all__ = ["SendEmailStepHandler", "render_messages", "split_recipients"]
