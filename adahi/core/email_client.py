# adahi/core/email_client.py
"""
Outgoing email for donor notices.

Typical .env configuration (Gmail example with App Password):

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USERNAME=adahi.committee@gmail.com
    SMTP_PASSWORD=<app password>
    SMTP_FROM_EMAIL=adahi.committee@gmail.com
    SMTP_FROM_NAME=لجنة الأضاحي
    SMTP_USE_TLS=false
    SMTP_USE_SSL=true
"""
import smtplib
from email.message import EmailMessage
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class SmtpSettings(BaseSettings):
    """
    SMTP configuration. Everything is optional: without host and
    credentials `send_email` refuses to send.

    Typical configs:
      * SSL: SMTP_PORT=465, SMTP_USE_SSL=true,  SMTP_USE_TLS=false
      * TLS: SMTP_PORT=587, SMTP_USE_SSL=false, SMTP_USE_TLS=true
    """

    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    # Falls back to SMTP_USERNAME
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Adahi Tracker"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USERNAME and self.SMTP_PASSWORD)

    @property
    def from_header(self) -> str:
        sender = self.SMTP_FROM_EMAIL or self.SMTP_USERNAME or ""
        return f"{self.SMTP_FROM_NAME} <{sender}>"


@lru_cache
def get_smtp_settings() -> SmtpSettings:
    return SmtpSettings()


def _connect(cfg: SmtpSettings) -> smtplib.SMTP:
    """SSL connection when SMTP_USE_SSL, else plain + optional STARTTLS."""
    if cfg.SMTP_USE_SSL:
        return smtplib.SMTP_SSL(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=30)

    server = smtplib.SMTP(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=30)
    if cfg.SMTP_USE_TLS:
        server.starttls()
    return server


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> None:
    """
    Send an email to a single recipient.

    Raises
    ------
    RuntimeError:
        If SMTP is not configured.
    smtplib.SMTPException / OSError:
        If the connection or the send fails.
    """
    cfg = get_smtp_settings()
    if not cfg.configured:
        raise RuntimeError(
            "SMTP is not configured. Set SMTP_HOST, SMTP_USERNAME and SMTP_PASSWORD."
        )

    msg = EmailMessage()
    msg["From"] = cfg.from_header
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")

    server = _connect(cfg)
    try:
        server.login(cfg.SMTP_USERNAME, cfg.SMTP_PASSWORD)
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            pass
