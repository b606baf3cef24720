"""
auth/mailer.py -- Outbound email for activation and password-reset messages.

SMTP when configured (SMTP_HOST, SMTP_USER, SMTP_PASSWORD), console fallback
otherwise: the code and link are written to the "kin.mail" logger so local
development works without a mail server.

send() reports success as a bool and never raises. A delivery failure must not
roll back the registration or reset that triggered it; the user can ask for
the code again.

Layer rule: no imports from api/, content/, or storage/.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("kin.mail")


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    code: str
    token: str
    link: str
    expires_minutes: int = 10


def _render_text(msg: MailMessage) -> str:
    return (
        f"Your verification code is: {msg.code}\n\n"
        f"Or open this link: {msg.link}\n\n"
        f"This code will expire in {msg.expires_minutes} minutes.\n\n"
        "If you didn't request this, you can safely ignore this email.\n"
    )


def _render_html(msg: MailMessage) -> str:
    return f"""<!DOCTYPE html>
<html>
<body style="font-family: sans-serif;">
  <div style="max-width: 400px; margin: 40px auto; padding: 20px;">
    <h2>{msg.subject}</h2>
    <p>Enter this code:</p>
    <div style="font-size: 32px; font-weight: bold; letter-spacing: 4px; text-align: center;
                background: #f5f5f5; padding: 16px; border-radius: 8px;">{msg.code}</div>
    <p>Or <a href="{msg.link}">click here</a>.</p>
    <p>This code will expire in {msg.expires_minutes} minutes.</p>
  </div>
</body>
</html>
"""


class Mailer:
    """Sends MailMessages over SMTP, or logs them when SMTP is not configured."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def is_configured(self) -> bool:
        return self._settings.smtp_configured

    def send(self, msg: MailMessage) -> bool:
        if not self.is_configured:
            logger.info("Mail to %s [%s]: code=%s link=%s (console fallback)", msg.to, msg.subject, msg.code, msg.link)
            return True

        s = self._settings
        sender = s.smtp_from_email or s.smtp_user
        mime = MIMEMultipart("alternative")
        mime["Subject"] = msg.subject
        mime["From"] = sender
        mime["To"] = msg.to
        mime.attach(MIMEText(_render_text(msg), "plain"))
        mime.attach(MIMEText(_render_html(msg), "html"))

        try:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_seconds) as server:
                server.starttls()
                server.login(s.smtp_user, s.smtp_password)
                server.sendmail(sender, msg.to, mime.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send mail to %s: %s", msg.to, exc)
            return False

        logger.info("Mail sent to %s [%s]", msg.to, msg.subject)
        return True
