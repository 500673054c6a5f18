"""SMTP delivery of rendered plans."""

from __future__ import annotations

import html
import os
import smtplib
import ssl
import sys
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Callable, Optional, Sequence

from observability import setup_structured_logger
from schemas import RenderProfile

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_SECURE = os.getenv("SMTP_SECURE", "false").strip().lower() in {"1", "true", "yes", "on"}
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
MAIL_FROM = os.getenv("MAIL_FROM", "")
SMTP_TIMEOUT_SECONDS = float(os.getenv("SMTP_TIMEOUT_SECONDS", "30"))

logger = setup_structured_logger("brosplit.mailer")


@dataclass(frozen=True)
class MailAttachment:
    filename: str
    content: bytes
    mime_type: str = "application/pdf"


def build_plan_email_html(profile: RenderProfile, has_workout: bool = True, has_nutrition: bool = False) -> str:
    """HTML body for the plan delivery email."""
    name = html.escape(profile.name or "Champion")
    goal = html.escape(profile.goal or "building muscle")
    if has_workout and has_nutrition:
        what = "6-week plan and 7-day nutrition plan are"
    elif has_nutrition:
        what = "7-day nutrition plan is"
    else:
        what = "6-week plan is"
    return f"""<!DOCTYPE html><html><head><meta charset="utf-8">
<style>
  body {{ font-family: Arial, sans-serif; background: #f8fafc; margin:0; padding:0; }}
  .container {{ max-width:600px; margin:auto; background:#fff; }}
  .header {{ background:#2563eb; color:#fff; padding:30px; text-align:center; }}
  .header h1 {{ margin:0; font-size:24px; }}
  .content {{ padding:20px; }}
  .footer {{ background:#1f2937; color:#fff; padding:20px; text-align:center; font-size:12px; }}
</style>
</head><body><div class="container">
  <div class="header"><h1>🔥 Your BroSplit Plan is Ready!</h1></div>
  <div class="content">
    <p>Hey {name},</p>
    <p>Your personalized {what} attached. Let's crush that goal of <strong>{goal}</strong>!</p>
  </div>
  <div class="footer">BroSplit AI Team • support@brosplit-ai.com</div>
</div></body></html>"""


def build_plan_email_subject(profile: RenderProfile) -> str:
    return f"🔥 Your BroSplit Plan is Ready, {profile.name or 'Champion'}!"


class SMTPMailSender:
    """Sends mail over a fresh SMTP connection per message.

    ``secure`` selects implicit TLS (SMTP_SSL); otherwise STARTTLS is used
    when the server offers it.
    """

    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        secure: bool = SMTP_SECURE,
        user: str = SMTP_USER,
        password: str = SMTP_PASS,
        mail_from: str = MAIL_FROM,
        timeout: float = SMTP_TIMEOUT_SECONDS,
        smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.secure = secure
        self.user = user
        self.password = password
        self.mail_from = mail_from or user
        self.timeout = timeout
        self._smtp_factory = smtp_factory

    def _connect(self) -> smtplib.SMTP:
        if not self.host:
            raise smtplib.SMTPException("SMTP_HOST is not configured")
        if self._smtp_factory is not None:
            smtp = self._smtp_factory(self.host, self.port, timeout=self.timeout)
        elif self.secure:
            smtp = smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        try:
            if self._smtp_factory is None and not self.secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls(context=ssl.create_default_context())
                    smtp.ehlo()
            if self.user:
                smtp.login(self.user, self.password)
        except (smtplib.SMTPException, OSError):
            smtp.close()
            raise
        return smtp

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachments: Sequence[MailAttachment] = (),
    ) -> None:
        """Send one HTML message with attachments; SMTP errors propagate."""
        message = EmailMessage()
        message["From"] = f'"BroSplit AI" <{self.mail_from}>'
        message["To"] = to
        message["Subject"] = subject
        message["X-Priority"] = "1"
        message.set_content("Your BroSplit plan is attached.")
        message.add_alternative(html_body, subtype="html")
        for attachment in attachments:
            maintype, _, subtype = attachment.mime_type.partition("/")
            message.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )

        smtp = self._connect()
        try:
            smtp.send_message(message)
        finally:
            smtp.quit()

        print(f"   📧 Mail sent to {to} ({len(attachments)} attachment(s))", file=sys.stderr)
        logger.info(
            "Mail sent",
            extra={
                "extra_fields": {
                    "attachments": [a.filename for a in attachments],
                    "bytes": sum(len(a.content) for a in attachments),
                }
            },
        )

    def verify(self) -> bool:
        """Check that the SMTP server accepts a connection (and login)."""
        try:
            smtp = self._connect()
            try:
                smtp.noop()
            finally:
                smtp.quit()
        except (smtplib.SMTPException, OSError) as exc:
            print(f"   ⚠️  SMTP check failed: {exc}", file=sys.stderr)
            logger.warning("SMTP check failed", extra={"extra_fields": {"error": str(exc)}})
            return False
        return True
