import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from safario.models.emergency import EmergencyAlert, EmergencyContact
from safario.utils.notifications import SMSService, EmailService

logger = logging.getLogger(__name__)

class EmergencyAlertService:
    """Fans an SOS out to the traveller's emergency contacts by SMS and email."""

    def __init__(self):
        self.sms_service = SMSService()
        self.email_service = EmailService()

    async def handle_emergency_alert(
        self,
        alert_data: Dict[str, Any],
        contacts: List[Dict[str, Optional[str]]]
    ) -> bool:
        """
        Notify every contact concurrently.
        Returns True when at least one message went out.
        """
        if not contacts:
            logger.info(f"Alert {alert_data['alert_id'][:8]} has no emergency contacts to notify")
            return False

        results = await asyncio.gather(
            self._send_sms_alerts(alert_data, contacts),
            self._send_email_notifications(alert_data, contacts),
            return_exceptions=True
        )

        delivered = 0
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Emergency notification channel failed: {result}")
            else:
                delivered += result

        logger.info(f"Alert {alert_data['alert_id'][:8]}: {delivered} notification(s) delivered")
        return delivered > 0

    async def _send_sms_alerts(self, alert_data: Dict[str, Any], contacts: List[Dict[str, Optional[str]]]) -> int:
        numbers = [c["phone_number"] for c in contacts if c.get("phone_number")]
        if not numbers:
            return 0
        results = await self.sms_service.send_bulk_sms(numbers, self._format_emergency_sms(alert_data))
        return sum(1 for sent in results.values() if sent)

    async def _send_email_notifications(self, alert_data: Dict[str, Any], contacts: List[Dict[str, Optional[str]]]) -> int:
        emails = [c["email"] for c in contacts if c.get("email")]
        if not emails:
            return 0

        subject = f"EMERGENCY ALERT from {alert_data['full_name']}"
        body = self._format_emergency_email(alert_data)
        results = await asyncio.gather(
            *(self.email_service.send_email(to_email=email, subject=subject, body=body) for email in emails),
            return_exceptions=True
        )
        return sum(1 for sent in results if sent is True)

    def _maps_link(self, alert_data: Dict[str, Any]) -> str:
        location = alert_data["location"]
        return f"https://www.google.com/maps?q={location['latitude']},{location['longitude']}"

    def _format_emergency_sms(self, alert_data: Dict[str, Any]) -> str:
        timestamp = datetime.fromisoformat(alert_data["timestamp"])
        return (
            f"SAFARIO EMERGENCY ALERT\n"
            f"{alert_data['full_name']} has triggered an SOS ({alert_data['alert_type']}).\n"
            f"Time: {timestamp.strftime('%H:%M %d/%m/%Y')}\n"
            f"Location: {self._maps_link(alert_data)}\n"
            f"Please respond immediately."
        )

    def _format_emergency_email(self, alert_data: Dict[str, Any]) -> str:
        location = alert_data["location"]
        return f"""{alert_data['full_name']} has triggered an emergency alert on Safario.

Alert type: {alert_data['alert_type']}
Time: {alert_data['timestamp']}
Coordinates: {location['latitude']}, {location['longitude']}
Map: {self._maps_link(alert_data)}

Please try to reach them and contact local emergency services if needed.
"""

# Global instance
emergency_service = EmergencyAlertService()

def build_alert_data(alert: EmergencyAlert, full_name: str) -> Dict[str, Any]:
    return {
        "alert_id": str(alert.id),
        "alert_type": alert.alert_type,
        "full_name": full_name,
        "location": {
            "latitude": alert.location_lat,
            "longitude": alert.location_lng,
        },
        "timestamp": alert.created_at.isoformat(),
    }

def contact_targets(contacts: List[EmergencyContact]) -> List[Dict[str, Optional[str]]]:
    """Plain copies so the background task does not touch ORM state"""
    return [{"phone_number": c.phone_number, "email": c.email} for c in contacts]

async def send_emergency_notifications(
    alert_data: Dict[str, Any],
    contacts: List[Dict[str, Optional[str]]]
) -> bool:
    """
    Entry point for the emergency endpoint's background task.
    Delivery is fire-and-forget; failures are logged only.
    """
    try:
        return await emergency_service.handle_emergency_alert(alert_data, contacts)
    except Exception as e:
        logger.exception(f"Emergency notification failed: {e}")
        return False
