"""
Outgoing email.

Mail goes through SMTP when SMTP_HOST is configured (implicit TLS on port
465, STARTTLS otherwise). Without SMTP the message is logged and kept in
the in-process `outbox`, which development setups and tests read from.
"""
from __future__ import annotations

import logging
import os
import smtplib
from collections import deque
from email.message import EmailMessage
from typing import Deque, Dict

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
MAIL_FROM = os.getenv("MAIL_FROM", SMTP_USER or "no-reply@edumanage.local")

outbox: Deque[Dict[str, str]] = deque(maxlen=100)


def _build_message(to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = MAIL_FROM
    message["To"] = to
    message.set_content(body)
    return message


def send_mail(to: str, subject: str, body: str) -> bool:
    """Send a plain-text email. Returns False if delivery failed."""
    if not SMTP_HOST:
        outbox.append({"to": to, "subject": subject, "body": body})
        logger.info(f"SMTP not configured, queued mail to {to}: {subject}")
        return True

    message = _build_message(to, subject, body)
    try:
        if SMTP_PORT == 465:
            with smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=10) as server:
                if SMTP_USER:
                    server.login(SMTP_USER, SMTP_PASSWORD)
                server.send_message(message)
        else:
            with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10) as server:
                server.starttls()
                if SMTP_USER:
                    server.login(SMTP_USER, SMTP_PASSWORD)
                server.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send mail to {to}: {e}")
        return False

    logger.info(f"Sent mail to {to}: {subject}")
    return True


def clear_outbox() -> None:
    outbox.clear()
