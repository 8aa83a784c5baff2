import logging
import smtplib
from email.message import EmailMessage
from functools import lru_cache

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)


class Mailer:
    """Plain-text mail over SMTP, with STARTTLS when credentials are configured."""

    def __init__(self, host: str, port: int, user=None, password=None, from_email="", from_name=""):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = f"{from_name} <{from_email}>" if from_name else from_email

    def send(self, to: str, subject: str, text: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
                if self.user:
                    smtp.starttls()
                    smtp.login(self.user, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Sending mail to %s failed: %s", to, e)
            raise UpstreamError("Email could not be sent")
        logger.info("Mail sent to %s: %s", to, subject)


@lru_cache
def get_mailer() -> Mailer:
    return Mailer(
        config.SMTP_HOST,
        config.SMTP_PORT,
        config.SMTP_USER,
        config.SMTP_PASSWORD,
        config.SMTP_FROM_EMAIL,
        config.SMTP_FROM_NAME,
    )
