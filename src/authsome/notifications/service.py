"""Outbound notifications: SendGrid / Resend email, log fallback."""

import enum
import logging

import httpx

logger = logging.getLogger(__name__)


class ChannelType(str, enum.Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"


class Notifier:
    """Delivers a message to an identity.

    Best-effort: delivery problems are logged and reported as ``False``,
    never raised. With no provider configured the message is written to the
    log. The body is only logged when ``log_body`` is set (development), so
    one-time codes stay out of production logs.
    """

    def __init__(
        self,
        provider: str = "",
        api_key: str = "",
        from_email: str = "no-reply@authsome.dev",
        from_name: str = "Authsome",
        timeout: float = 30,
        log_body: bool = False,
    ):
        self.provider = provider.lower()  # "sendgrid" or "resend"
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout
        self.log_body = log_body

    async def send_notification(
        self,
        channel: ChannelType,
        destination: str,
        subject: str,
        body: str,
    ) -> bool:
        logger.debug("send_notification(%s, %s, %s)", channel.value, destination, subject)
        if channel == ChannelType.EMAIL:
            if self.provider == "sendgrid":
                return await self._send_sendgrid(destination, subject, body)
            if self.provider == "resend":
                return await self._send_resend(destination, subject, body)

        if self.log_body:
            logger.info(
                "NOTIFICATION type=%s to=%s subject=%r body=%r",
                channel.value,
                destination,
                subject,
                body,
            )
        else:
            logger.info(
                "NOTIFICATION type=%s to=%s subject=%r body=<%d chars redacted>",
                channel.value,
                destination,
                subject,
                len(body),
            )
        return False

    async def _send_sendgrid(self, to: str, subject: str, body: str) -> bool:
        """Send via SendGrid v3 API."""
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    "https://api.sendgrid.com/v3/mail/send",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "personalizations": [{"to": [{"email": to}]}],
                        "from": {"email": self.from_email, "name": self.from_name},
                        "subject": subject,
                        "content": [{"type": "text/plain", "value": body}],
                    },
                    timeout=self.timeout,
                )
                if resp.status_code in (200, 202):
                    logger.info("SendGrid email sent to %s", to)
                    return True
                logger.warning("SendGrid error: %s %s", resp.status_code, resp.text)
                return False
        except httpx.HTTPError:
            logger.exception("SendGrid send failed")
            return False

    async def _send_resend(self, to: str, subject: str, body: str) -> bool:
        """Send via Resend API."""
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    "https://api.resend.com/emails",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": f"{self.from_name} <{self.from_email}>",
                        "to": [to],
                        "subject": subject,
                        "text": body,
                    },
                    timeout=self.timeout,
                )
                if resp.status_code in (200, 201):
                    logger.info("Resend email sent to %s", to)
                    return True
                logger.warning("Resend error: %s %s", resp.status_code, resp.text)
                return False
        except httpx.HTTPError:
            logger.exception("Resend send failed")
            return False
