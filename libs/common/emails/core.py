"""
Core email sending utilities using SMTP.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Sequence, Union

from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


def _deliver(
    sender: str,
    recipients: list[str],
    message: str,
) -> None:
    settings = get_settings()
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.starttls()
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.sendmail(sender, recipients, message)


async def send_email(
    to_email: Union[str, Sequence[str]],
    subject: str,
    body: str,
    html_body: Optional[str] = None,
    reply_to: Optional[str] = None,
    from_email: Optional[str] = None,
    from_name: Optional[str] = None,
) -> bool:
    """
    Send an email over SMTP.

    Args:
        to_email: Recipient address, or a list of addresses
        subject: Email subject line
        body: Plain text body
        html_body: Optional HTML body (if not provided, plain text is used)
        reply_to: Optional Reply-To address
        from_email: Sender email (defaults to DEFAULT_FROM_EMAIL)
        from_name: Sender name (defaults to DEFAULT_FROM_NAME)

    Returns:
        True if email was sent successfully, False otherwise
    """
    settings = get_settings()
    recipients = [to_email] if isinstance(to_email, str) else list(to_email)

    if not settings.SMTP_PASSWORD or not settings.SMTP_USERNAME:
        logger.warning("SMTP credentials not configured - email not sent")
        logger.info("Would have sent email to %s: %s", ", ".join(recipients), subject)
        return False

    sender_email = from_email or settings.DEFAULT_FROM_EMAIL
    sender_name = from_name or settings.DEFAULT_FROM_NAME

    if html_body:
        msg = MIMEMultipart("alternative")
        msg.attach(MIMEText(body, "plain"))
        msg.attach(MIMEText(html_body, "html"))
    else:
        msg = MIMEText(body, "plain")

    msg["Subject"] = subject
    msg["From"] = f"{sender_name} <{sender_email}>"
    msg["To"] = ", ".join(recipients)
    if reply_to:
        msg["Reply-To"] = reply_to

    try:
        logger.info("Sending email to %s: %s", ", ".join(recipients), subject)
        await asyncio.to_thread(_deliver, sender_email, recipients, msg.as_string())
        logger.info("Email sent successfully to %s", ", ".join(recipients))
        return True

    except smtplib.SMTPAuthenticationError as e:
        logger.error("SMTP authentication failed: %s", e)
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email: %s: %s", type(e).__name__, e)
        return False
