"""Email and SMS delivery helpers."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Iterable

from fastapi import BackgroundTasks

from lablinc.core.config import get_settings

logger = logging.getLogger(__name__)


def schedule_email(
    background_tasks: BackgroundTasks,
    *,
    recipients: Iterable[str],
    subject: str,
    body: str,
) -> None:
    """Queue an email to be delivered after the response is sent."""
    recipients_list = [addr for addr in recipients if addr]
    if not recipients_list:
        logger.debug("No recipients provided for email; skipping")
        return
    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_port:
        logger.debug("SMTP disabled; skipping email to %s", recipients_list)
        return
    background_tasks.add_task(_send_email, recipients_list, subject, body)


def schedule_sms(
    background_tasks: BackgroundTasks,
    *,
    phone_numbers: Iterable[str],
    message: str,
) -> None:
    """Queue an SMS; only echoed to the log unless a provider is wired in."""
    numbers = [number for number in phone_numbers if number]
    if not numbers:
        logger.debug("No phone numbers provided for SMS; skipping")
        return
    if not get_settings().dev_sms_echo:
        logger.debug("SMS delivery disabled; skipping %d message(s)", len(numbers))
        return
    for number in numbers:
        background_tasks.add_task(_log_sms_stub, number, message)


def build_welcome_email(*, name: str, role: str) -> tuple[str, str]:
    subject = "Welcome to LabLinc"
    if role == "institute":
        action = "list your instruments and manage incoming booking requests"
    else:
        action = "browse lab instruments and request bookings"
    body = (
        f"Hi {name},\n\n"
        f"Your LabLinc account is ready. You can now {action}.\n\n"
        "-- The LabLinc Team"
    )
    return subject, body


def build_password_reset_email(
    *, name: str, token: str, minutes: int
) -> tuple[str, str]:
    link = f"{get_settings().frontend_url.rstrip('/')}/reset-password?token={token}"
    subject = "Reset your LabLinc password"
    body = (
        f"Hi {name},\n\n"
        f"Use the link below to choose a new password. It expires in {minutes} minutes.\n\n"
        f"{link}\n\n"
        "If you did not ask for a reset you can ignore this email.\n"
        "-- The LabLinc Team"
    )
    return subject, body


def build_email_verification_email(*, name: str, token: str) -> tuple[str, str]:
    link = f"{get_settings().frontend_url.rstrip('/')}/verify-email?token={token}"
    subject = "Confirm your LabLinc email address"
    body = f"Hi {name},\n\nPlease confirm your email address:\n\n{link}\n"
    return subject, body


def build_admin_password_email(*, name: str, password: str) -> tuple[str, str]:
    subject = "Your LabLinc password was reset"
    body = (
        f"Hi {name},\n\n"
        "An administrator has reset your password. Your temporary password is:\n\n"
        f"    {password}\n\n"
        "Please sign in and change it from your profile."
    )
    return subject, body


def build_inquiry_receipt_email(*, name: str, topic: str) -> tuple[str, str]:
    subject = f"We received your {topic}"
    body = (
        f"Hi {name},\n\n"
        f"Thanks for reaching out. Our team will review your {topic} and get back to you.\n\n"
        "-- The LabLinc Team"
    )
    return subject, body


def build_booking_request_email(
    *, owner_name: str, instrument_name: str, user_name: str, start_at: str, end_at: str
) -> tuple[str, str]:
    subject = f"New booking request for {instrument_name}"
    body = (
        f"Hello {owner_name},\n\n"
        f"{user_name} has requested {instrument_name}.\n"
        f"From: {start_at}\nTo: {end_at}\n\n"
        "Review the request from your LabLinc dashboard."
    )
    return subject, body


def build_booking_status_email(
    *, user_name: str, instrument_name: str, status: str, invoice_number: str | None
) -> tuple[str, str]:
    subject = f"Your booking for {instrument_name} is {status}"
    lines = [f"Hello {user_name},", "", f"Your booking for {instrument_name} is now {status}."]
    if invoice_number:
        lines.append(f"Invoice: {invoice_number}")
    lines.extend(["", "-- The LabLinc Team"])
    return subject, "\n".join(lines)


def build_payment_receipt_email(
    *, invoice_number: str, amount: str, currency: str
) -> tuple[str, str]:
    subject = f"Payment received for invoice {invoice_number}"
    body = (
        f"Hello,\n\nWe have received your payment of {currency} {amount} "
        f"for invoice {invoice_number}. Thank you!\n"
    )
    return subject, body


def _send_email(recipients: list[str], subject: str, body: str) -> None:
    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_port:
        logger.info("SMTP settings missing; skipping email delivery to %s", recipients)
        return

    message = EmailMessage()
    message["Subject"] = subject
    message["To"] = ", ".join(recipients)
    message["From"] = settings.smtp_from or settings.smtp_username or "no-reply@lablinc.local"
    message.set_content(body)

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as smtp:
            if settings.smtp_username and settings.smtp_password:
                smtp.starttls()
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(message)
        logger.info("Email sent to %s", recipients)
    except (smtplib.SMTPException, OSError):  # pragma: no cover - logging side-effect only
        logger.exception("Failed to send email to %s", recipients)


def _log_sms_stub(phone_number: str, message: str) -> None:
    logger.info("SMS to %s: %s", phone_number, message)
