from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from ..exceptions import UpstreamFailure
from .interfaces import NotifierInterface


logger = logging.getLogger(__name__)


class SmtpNotifier(NotifierInterface):
    """SMTP 로 배송 안내 메일을 보낸다.

    text 본문은 항상 보내고, html 이 있으면 multipart/alternative 로 함께 싣는다.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        sender_name: str = "Your Shop",
        use_starttls: bool = True,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._sender_name = sender_name
        self._use_starttls = use_starttls
        self._timeout = timeout_seconds

    def notify(
        self,
        recipient: str,
        subject: str,
        body: str,
        html: str | None = None,
    ) -> None:
        if not self._host:
            raise UpstreamFailure("SMTP_HOST is not configured")

        message = EmailMessage()
        message["From"] = formataddr((self._sender_name, self._user))
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        if html:
            message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                if self._use_starttls:
                    server.starttls()
                if self._user:
                    server.login(self._user, self._password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise UpstreamFailure(f"failed to send email: {exc}") from exc

        logger.info("delivery email sent via %s:%s", self._host, self._port)
