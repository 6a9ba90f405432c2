# secure_mail/services/mail_service.py
"""
send_mail: one best-effort SMTP send using the stored login.
"""

from __future__ import annotations

import os
import smtplib
import socket
import ssl
from email.message import EmailMessage
from typing import Callable, Optional

from rich.markup import escape

from .. import log
from ..app_config import DEFAULT_SMTP_TIMEOUT_SECONDS, ENV_SMTP_TIMEOUT, SMTPS_PORT
from ..errors import InvalidInput, MailSendError
from ..models import RelaySettings
from .config_manager import ConfigManager
from .prompts import validate_email

SmtpFactory = Callable[[RelaySettings], smtplib.SMTP]


def build_message(sender: str, to: str, subject: str, body: str) -> EmailMessage:
    problem = validate_email(to)
    if problem:
        raise InvalidInput(f"failed to parse --to: {problem}")
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body)
    return msg


def smtp_timeout(environ=None) -> float:
    environ = os.environ if environ is None else environ
    value = environ.get(ENV_SMTP_TIMEOUT)
    if not value:
        return DEFAULT_SMTP_TIMEOUT_SECONDS
    try:
        timeout = float(value)
    except ValueError:
        timeout = 0.0
    if not 0 < timeout < float("inf"):
        log.warning(
            f"ignoring {ENV_SMTP_TIMEOUT}={escape(repr(value))}, using {DEFAULT_SMTP_TIMEOUT_SECONDS:g} seconds"
        )
        return DEFAULT_SMTP_TIMEOUT_SECONDS
    return timeout


def _open_transport(relay: RelaySettings) -> smtplib.SMTP:
    timeout = smtp_timeout()
    context = ssl.create_default_context()
    if relay.tls and relay.port == SMTPS_PORT:
        smtp = smtplib.SMTP_SSL(relay.addr, relay.port, timeout=timeout, context=context)
        smtp.ehlo()
        return smtp
    smtp = smtplib.SMTP(relay.addr, relay.port, timeout=timeout)
    smtp.ehlo()
    if relay.tls:
        smtp.starttls(context=context)
        smtp.ehlo()
    return smtp


def _authenticate(smtp: smtplib.SMTP, relay: RelaySettings, manager: ConfigManager) -> None:
    """Log in with the first configured mechanism the server offers."""
    advertised = (smtp.esmtp_features.get("auth") or "").upper().split()
    mechanism = next((m for m in relay.authentication if m.value in advertised), None)
    if mechanism is None:
        raise MailSendError(
            f"{relay.addr} offers none of the configured mechanisms "
            f"({', '.join(m.value for m in relay.authentication)})"
        )

    creds = manager.credentials()
    smtp.user, smtp.password = creds.username, creds.password
    try:
        handler = getattr(smtp, "auth_" + mechanism.value.lower().replace("-", "_"))
        smtp.auth(mechanism.value, handler, initial_response_ok=True)
    finally:
        # the plaintext is only needed for the AUTH exchange
        smtp.password = None
        del creds


def send_mail(
    manager: ConfigManager,
    to: str,
    subject: str,
    body: str,
    smtp_factory: Optional[SmtpFactory] = None,
) -> None:
    relay = manager.relay_settings()
    message = build_message(manager.username, to, subject, body)
    factory = smtp_factory or _open_transport

    try:
        log.info("creating transport...")
        smtp = factory(relay)
        try:
            _authenticate(smtp, relay, manager)
            log.info("sending message...")
            smtp.send_message(message)
        finally:
            try:
                smtp.quit()
            except (smtplib.SMTPException, OSError):
                smtp.close()
    except (smtplib.SMTPException, socket.timeout, OSError) as e:
        raise MailSendError(f"{relay.addr}:{relay.port}: {e}") from e
