"""SMTP 寄信；未設定 smtp_host 時丟出 EmailNotConfiguredError，不假裝已寄出"""
import asyncio
import logging
import smtplib
from contextlib import contextmanager
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

from agentcare.config import settings

logger = logging.getLogger(__name__)


class EmailNotConfiguredError(Exception):
    """smtp_host 未設定，信件未寄出"""


class EmailClient:
    def __init__(
        self,
        smtp_host: Optional[str],
        smtp_port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_ssl: bool = False,
        sender: str = "no-reply@agentcare.local",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.sender = sender

    @property
    def configured(self) -> bool:
        return bool(self.smtp_host)

    @contextmanager
    def _connection(self):
        server = None
        try:
            if self.use_ssl:
                server = smtplib.SMTP_SSL(self.smtp_host, self.smtp_port)
            else:
                server = smtplib.SMTP(self.smtp_host, self.smtp_port)
                server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            yield server
        finally:
            if server is not None:
                try:
                    server.quit()
                except smtplib.SMTPException as e:
                    logger.warning("Error closing SMTP connection: %s", e)

    def _build_message(self, recipients: List[str], subject: str, text_body: str, html_body: Optional[str]) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body or "", "plain"))
        if html_body:
            msg.attach(MIMEText(html_body, "html"))
        return msg

    def send_email(self, recipients: List[str], subject: str, text_body: str, html_body: Optional[str] = None) -> None:
        """寄送失敗直接丟出 smtplib / OSError；未設定 SMTP 丟 EmailNotConfiguredError，皆由呼叫端計入失敗"""
        if not self.configured:
            raise EmailNotConfiguredError("SMTP is not configured")
        msg = self._build_message(recipients, subject, text_body, html_body)
        with self._connection() as server:
            server.sendmail(self.sender, recipients, msg.as_string())
        logger.info("Email sent to %s", ", ".join(recipients))

    async def send(self, recipients: List[str], subject: str, text_body: str, html_body: Optional[str] = None) -> None:
        await asyncio.to_thread(self.send_email, recipients, subject, text_body, html_body)


def get_email_client() -> EmailClient:
    return EmailClient(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_ssl=settings.smtp_use_ssl,
        sender=settings.email_sender,
    )
