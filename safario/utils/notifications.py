import asyncio
import logging
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional

import aiohttp
import aiosmtplib

from safario.config import settings

logger = logging.getLogger(__name__)

def mask_phone(phone_number: str) -> str:
    """Keep the country code and last two digits for logs"""
    if len(phone_number) <= 6:
        return "****"
    return f"{phone_number[:3]}****{phone_number[-2:]}"

class NotificationService(ABC):
    """Abstract base class for notification services"""

    @abstractmethod
    async def send_notification(self, recipient: str, message: str, **kwargs) -> bool:
        pass

class SMSService(NotificationService):
    """SMS delivery through the Twilio Messages API"""

    def __init__(self):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.from_number = settings.TWILIO_PHONE_NUMBER
        self.api_url = settings.TWILIO_API_URL

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send_sms(self, phone_number: str, message: str) -> bool:
        """
        Send SMS to a phone number

        Args:
            phone_number: Recipient phone number in E.164 form
            message: SMS message content
        """
        if not self.is_configured:
            logger.error("SMS not sent: Twilio credentials not configured")
            return False

        payload = {
            "To": phone_number,
            "From": self.from_number,
            "Body": message,
        }
        success = await self._send_sms_request(payload)

        if success:
            logger.info(f"SMS sent successfully to {mask_phone(phone_number)}")
        else:
            logger.error(f"Failed to send SMS to {mask_phone(phone_number)}")

        return success

    async def send_bulk_sms(self, phone_numbers: List[str], message: str) -> Dict[str, bool]:
        """
        Send SMS to multiple recipients

        Returns:
            Dict mapping phone numbers to success status
        """
        results = {}

        tasks = [self.send_sms(phone, message) for phone in phone_numbers]
        sms_results = await asyncio.gather(*tasks, return_exceptions=True)

        for phone, result in zip(phone_numbers, sms_results):
            if isinstance(result, Exception):
                results[phone] = False
                logger.error(f"Bulk SMS error for {mask_phone(phone)}: {result}")
            else:
                results[phone] = result

        success_count = sum(1 for success in results.values() if success)
        logger.info(f"Bulk SMS: {success_count}/{len(phone_numbers)} sent successfully")

        return results

    async def _send_sms_request(self, payload: Dict[str, str]) -> bool:
        """Send HTTP request to Twilio"""
        url = f"{self.api_url}/Accounts/{self.account_sid}/Messages.json"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    data=payload,
                    auth=aiohttp.BasicAuth(self.account_sid, self.auth_token),
                    timeout=aiohttp.ClientTimeout(total=settings.HTTP_TIMEOUT_SECONDS)
                ) as response:
                    if response.status in (200, 201):
                        response_data = await response.json()
                        return self._parse_sms_response(response_data)

                    response_text = await response.text()
                    logger.error(f"SMS API error: {response.status} - {response_text}")
                    return False

        except asyncio.TimeoutError:
            logger.error("SMS request timeout")
            return False
        except aiohttp.ClientError as e:
            logger.error(f"SMS request error: {e}")
            return False

    def _parse_sms_response(self, response_data: Dict[str, Any]) -> bool:
        return response_data.get("status") in ["queued", "accepted", "sending", "sent"]

    async def send_notification(self, recipient: str, message: str, **kwargs) -> bool:
        return await self.send_sms(recipient, message)

class EmailService(NotificationService):
    """Email notification service"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_username and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None
    ) -> bool:
        if not self.is_configured:
            logger.warning(f"Email to {to_email} skipped: SMTP not configured")
            return False

        try:
            message = MIMEMultipart('alternative')
            message['From'] = self.from_email
            message['To'] = to_email
            message['Subject'] = subject
            message.attach(MIMEText(body, 'plain'))
            if html_body:
                message.attach(MIMEText(html_body, 'html'))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                start_tls=True,
                username=self.smtp_username,
                password=self.smtp_password,
            )

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Email sending error to {to_email}: {e}")
            return False

    async def send_notification(self, recipient: str, message: str, **kwargs) -> bool:
        subject = kwargs.get("subject", "Safario notification")
        return await self.send_email(recipient, subject, message)
