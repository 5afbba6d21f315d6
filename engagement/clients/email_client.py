"""
SMTP mailer for engagement emails.

Sending is best-effort: a comment is already persisted by the time its
email goes out, so every failure here is logged and counted, never raised.
"""
import html
import logging
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from engagement.config import settings
from engagement.telemetry import EMAIL_FAILURES_TOTAL

logger = logging.getLogger(__name__)


def build_comment_email_html(to_name: str, from_name: str, post_url: str, comment_body: str) -> str:
    return f"""
    <html>
        <body>
            <p>Hi {html.escape(to_name or "")},</p>
            <p><strong>{html.escape(from_name or "Someone")}</strong> commented on your post:</p>
            <blockquote>{html.escape(comment_body or "")}</blockquote>
            <p><a href="{html.escape(post_url, quote=True)}">View the comment</a></p>
        </body>
    </html>
    """


class EmailDispatcher:
    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_email: str = "noreply@example.com",
        from_name: str = "Social Feed",
        tls: bool = True,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._from_email = from_email
        self._from_name = from_name
        self._tls = tls

    @property
    def configured(self) -> bool:
        return bool(self._host)

    async def send_comment_email(
        self,
        to_email: Optional[str],
        to_name: str,
        from_name: str,
        post_url: str,
        comment_body: str,
    ) -> None:
        subject = f"{from_name} commented on your post"
        body = build_comment_email_html(to_name, from_name, post_url, comment_body)
        await self._send(to_email, subject, body)

    async def _send(self, to_email: Optional[str], subject: str, body_html: str) -> None:
        if not self.configured:
            logger.warning("SMTP not configured, skipping email '%s'", subject)
            return
        if not to_email:
            logger.warning("Recipient has no email address, skipping email '%s'", subject)
            return

        msg = EmailMessage()
        msg["From"] = f"{self._from_name} <{self._from_email}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body_html, subtype="html")

        # STARTTLS on 587, implicit TLS on 465
        start_tls = self._tls and self._port == 587
        use_tls = self._tls and self._port == 465
        try:
            await aiosmtplib.send(
                msg,
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                start_tls=start_tls,
                use_tls=use_tls,
            )
            logger.info("Email '%s' sent", subject)
        except Exception as exc:
            EMAIL_FAILURES_TOTAL.inc()
            logger.error("Failed to send email '%s': %s", subject, exc)


# Singleton
email_dispatcher = EmailDispatcher(
    settings.smtp_host,
    port=settings.smtp_port,
    username=settings.smtp_user,
    password=settings.smtp_password,
    from_email=settings.smtp_from_email,
    from_name=settings.smtp_from_name,
    tls=settings.smtp_tls,
)
