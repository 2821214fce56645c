"""
Outbound email: the only delivery channel for nudges and team reports.

Every backend honours one contract: send(to, subject, html) -> bool.
Exceptions and timeouts are logged and reported as False; callers never see
them.

Backends (EMAIL_BACKEND):
  log   development stub: logs the message, always succeeds
  smtp  smtplib with STARTTLS and optional login
  http  JSON POST to a provider API (Resend-style) with a bearer key
"""
import logging
import smtplib
from email.message import EmailMessage

import requests

from flowtrack.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Mailer:
    def send(self, to: str, subject: str, html: str) -> bool:
        raise NotImplementedError


class LogMailer(Mailer):
    """Email (DEV LOG): nothing leaves the process."""

    def send(self, to: str, subject: str, html: str) -> bool:
        logger.info("EMAIL (dev log) to=%s subject=%s\n%s", to, subject, html)
        return True


class SmtpMailer(Mailer):
    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, to: str, subject: str, html: str) -> bool:
        cfg = self.settings
        if not cfg.EMAIL_SMTP_HOST:
            logger.warning("EMAIL_SMTP_HOST not configured, skipping email to %s", to)
            return False

        msg = EmailMessage()
        msg["From"] = cfg.EMAIL_FROM
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(cfg.EMAIL_SMTP_HOST, cfg.EMAIL_SMTP_PORT, timeout=cfg.EMAIL_TIMEOUT_SECONDS) as smtp:
                smtp.starttls()
                if cfg.EMAIL_SMTP_USER:
                    smtp.login(cfg.EMAIL_SMTP_USER, cfg.EMAIL_SMTP_PASSWORD)
                smtp.send_message(msg)
            return True
        except (smtplib.SMTPException, OSError):
            logger.exception("SMTP send failed to=%s", to)
            return False


class HttpMailer(Mailer):
    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, to: str, subject: str, html: str) -> bool:
        cfg = self.settings
        if not cfg.EMAIL_API_URL or not cfg.EMAIL_API_KEY:
            logger.warning("EMAIL_API_URL / EMAIL_API_KEY not configured, skipping email to %s", to)
            return False
        try:
            resp = requests.post(
                cfg.EMAIL_API_URL,
                json={"from": cfg.EMAIL_FROM, "to": [to], "subject": subject, "html": html},
                headers={"Authorization": f"Bearer {cfg.EMAIL_API_KEY}"},
                timeout=cfg.EMAIL_TIMEOUT_SECONDS,
            )
        except requests.RequestException:
            logger.exception("Email API request failed to=%s", to)
            return False
        if not resp.ok:
            logger.error("Email API rejected message to=%s (HTTP %d): %s", to, resp.status_code, resp.text[:200])
            return False
        return True


def get_mailer(settings: Settings | None = None) -> Mailer:
    settings = settings or get_settings()
    backend = settings.EMAIL_BACKEND.strip().lower()
    if backend == "log":
        return LogMailer()
    if backend == "smtp":
        return SmtpMailer(settings)
    if backend == "http":
        return HttpMailer(settings)
    raise ValueError(f"Unknown EMAIL_BACKEND: {settings.EMAIL_BACKEND!r}")


def safe_send(mailer: Mailer, to: str | None, subject: str, html: str) -> bool:
    """
    Mailer.send with the contract enforced: no address or any exception
    from a third-party Mailer implementation counts as a failed delivery.
    """
    if not to:
        return False
    try:
        return bool(mailer.send(to, subject, html))
    except Exception:
        logger.exception("Mailer %s raised for to=%s", type(mailer).__name__, to)
        return False
