"""
Email outbox for automation rules, with a retrying delivery worker.

``SEND_EMAIL`` actions only enqueue a row; delivery happens out of band
in ``process_outbox_batch`` so a slow or down SMTP server never blocks
the change hook.
"""

from __future__ import annotations

import datetime
import logging
import os
import smtplib
import threading
from email.message import EmailMessage
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.notification_outbox import NotificationOutbox


logger = logging.getLogger("notification_outbox")


def enqueue_email(
    db: Session,
    *,
    organization_id: str,
    to: str,
    subject: str,
    body: str,
    rule_id: Optional[str] = None,
) -> NotificationOutbox:
    row = NotificationOutbox(
        organization_id=organization_id,
        rule_id=rule_id,
        channel="EMAIL",
        target=to.strip(),
        subject=subject[:256],
        message=body,
        status="PENDING",
        attempts=0,
    )
    db.add(row)
    db.flush()
    logger.info("Email queued id=%s org=%s rule_id=%s to=%s", row.id, organization_id, rule_id, row.target)
    return row


class EmailProvider:
    def send_email(self, to: str, subject: str, body: str) -> None:
        raise NotImplementedError


class EmailLogProvider(EmailProvider):
    def send_email(self, to: str, subject: str, body: str) -> None:
        logging.getLogger("notifications").info("Log Email to=%s subject=%s", to, subject)


class EmailSMTPProvider(EmailProvider):
    """
    SMTP email provider.

    For MailHog:
        SMTP_HOST=127.0.0.1
        SMTP_PORT=1025
        SMTP_STARTTLS=false
    """

    def __init__(self) -> None:
        self.host = os.getenv("SMTP_HOST") or settings.smtp_host
        self.port = int(os.getenv("SMTP_PORT") or settings.smtp_port or 587)
        self.user = os.getenv("SMTP_USER") or settings.smtp_user
        self.password = os.getenv("SMTP_PASSWORD") or settings.smtp_password
        self.sender = os.getenv("SMTP_FROM") or settings.smtp_from or self.user or "fortress@localhost"
        raw_tls = os.getenv("SMTP_STARTTLS", "").lower().strip()
        if raw_tls in {"0", "false", "no"}:
            self.starttls = False
        elif raw_tls in {"1", "true", "yes"}:
            self.starttls = True
        else:
            self.starttls = self.port != 1025

    def send_email(self, to: str, subject: str, body: str) -> None:
        if not self.host:
            raise RuntimeError("SMTP_HOST is not configured")
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content(body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=8) as server:
                server.ehlo()
                if self.starttls:
                    server.starttls()
                    server.ehlo()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise RuntimeError(f"SMTP send failed: {exc}") from exc


def build_email_provider() -> EmailProvider:
    if os.getenv("SMTP_HOST") or settings.smtp_host:
        return EmailSMTPProvider()
    logger.warning("SMTP_HOST not configured; automation emails will only be logged")
    return EmailLogProvider()


def _backoff_seconds(attempt: int) -> int:
    schedule = [60, 300, 900, 3600, 21600]
    idx = min(max(attempt - 1, 0), len(schedule) - 1)
    return schedule[idx]


def process_outbox_batch(
    db: Session,
    *,
    provider: Optional[EmailProvider] = None,
    max_attempts: int = 5,
    batch_size: int = 50,
) -> int:
    provider = provider or build_email_provider()
    now = datetime.datetime.now(datetime.timezone.utc)

    query = (
        db.query(NotificationOutbox)
        .filter(
            NotificationOutbox.status.in_(["PENDING", "RETRYING"]),
            or_(NotificationOutbox.next_retry_at.is_(None), NotificationOutbox.next_retry_at <= now),
        )
        .order_by(NotificationOutbox.created_at.asc())
        .limit(batch_size)
    )
    if db.bind and db.bind.dialect.name == "postgresql":
        query = query.with_for_update(skip_locked=True)

    processed = 0
    for row in query.all():
        row.attempts = int(row.attempts or 0) + 1
        try:
            provider.send_email(row.target, row.subject or "Fortress automation", row.message)
            row.status = "SENT"
            row.sent_at = datetime.datetime.now(datetime.timezone.utc)
            row.last_error = None
            row.next_retry_at = None
        except Exception as exc:
            row.last_error = str(exc)
            logger.warning(
                "Notification send failed id=%s target=%s attempts=%s err=%s",
                row.id,
                row.target,
                row.attempts,
                exc,
            )
            if row.attempts >= max_attempts:
                row.status = "FAILED"
                row.next_retry_at = None
            else:
                row.status = "RETRYING"
                row.next_retry_at = now + datetime.timedelta(seconds=_backoff_seconds(row.attempts))
        db.add(row)
        db.commit()
        processed += 1
    return processed


def run_notification_worker(stop_event: threading.Event, interval_sec: Optional[float] = None) -> None:
    from ..core.db import SessionLocal

    interval = interval_sec or settings.notification_worker_interval_sec
    provider = build_email_provider()
    logger.info("Notification worker started interval=%ss provider=%s", interval, type(provider).__name__)
    while not stop_event.is_set():
        try:
            with SessionLocal() as db:
                process_outbox_batch(db, provider=provider)
        except Exception as exc:
            logger.exception("Notification worker cycle failed: %s", exc)
        stop_event.wait(interval)
    logger.info("Notification worker stopped")
