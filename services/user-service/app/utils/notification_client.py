"""
Notification Client
Delivers verification and password reset emails

NotificationClient talks to a notification service over HTTP. Without a
configured service URL the OutboxNotifier keeps messages in memory instead.
"""

import httpx
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SEND_TEMPLATE_ENDPOINT = "/api/v1/emails/send-template"


class NotificationError(Exception):
    """Raised when an email could not be handed to the notification service"""


class Notifier:
    """Email delivery used by the authentication flows"""

    frontend_url = "http://localhost:3000"

    async def send_template_email(
        self,
        to_emails: List[str],
        template_name: str,
        template_variables: Dict[str, Any],
        tags: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        raise NotImplementedError

    async def send_verification_email(self, email: str, first_name: Optional[str], token: str) -> Dict[str, Any]:
        """
        Send the email verification link

        Args:
            email: Recipient address
            first_name: Recipient first name, if known
            token: Verification token
        """
        return await self.send_template_email(
            to_emails=[email],
            template_name="email_verification",
            template_variables={
                "first_name": first_name or "",
                "token": token,
                "verification_url": f"{self.frontend_url}/verify-email?token={token}"
            },
            tags=["verification", "registration"]
        )

    async def send_password_reset_email(
        self,
        email: str,
        first_name: Optional[str],
        token: str,
        expires_in_hours: int = 24
    ) -> Dict[str, Any]:
        return await self.send_template_email(
            to_emails=[email],
            template_name="password_reset",
            template_variables={
                "first_name": first_name or "",
                "token": token,
                "reset_url": f"{self.frontend_url}/reset-password?token={token}",
                "expires_in": f"{expires_in_hours} hours"
            },
            tags=["password_reset", "security"]
        )

    async def close(self):
        pass


class NotificationClient(Notifier):
    """HTTP client for the notification service"""

    def __init__(
        self,
        base_url: str,
        frontend_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip('/')
        if frontend_url:
            self.frontend_url = frontend_url.rstrip('/')
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(10.0),
            headers={'Content-Type': 'application/json'}
        )

    async def send_template_email(
        self,
        to_emails: List[str],
        template_name: str,
        template_variables: Dict[str, Any],
        tags: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Send an email using a notification service template

        Raises:
            NotificationError: The service was unreachable or refused the email
        """
        payload = {
            "to_emails": to_emails,
            "template_name": template_name,
            "template_variables": template_variables,
            "priority": "normal",
            "tags": tags or []
        }

        try:
            response = await self._client.post(SEND_TEMPLATE_ENDPOINT, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error sending template email: {e.response.status_code} - {e.response.text}")
            raise NotificationError(f"Failed to send email: HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            logger.error(f"Request error sending template email: {e}")
            raise NotificationError(f"Failed to connect to notification service: {e}")

        result = response.json()
        logger.info(f"Template email sent: {template_name} -> {result.get('email_id')}")
        return result

    async def close(self):
        await self._client.aclose()


class OutboxNotifier(Notifier):
    """Keeps outgoing emails in memory, for development and tests"""

    def __init__(self, frontend_url: Optional[str] = None):
        if frontend_url:
            self.frontend_url = frontend_url.rstrip('/')
        self.outbox: List[Dict[str, Any]] = []

    async def send_template_email(
        self,
        to_emails: List[str],
        template_name: str,
        template_variables: Dict[str, Any],
        tags: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        message = {
            "email_id": f"outbox-{len(self.outbox) + 1}",
            "to_emails": to_emails,
            "template_name": template_name,
            "template_variables": template_variables,
            "tags": tags or []
        }
        self.outbox.append(message)
        logger.debug(f"Queued {template_name} email in the outbox")
        return message

    def last_message(self, template_name: str, email: str) -> Optional[Dict[str, Any]]:
        """Most recent message of a template sent to an address"""
        for message in reversed(self.outbox):
            if message["template_name"] == template_name and email in message["to_emails"]:
                return message
        return None


def create_notifier(notification_service_url: str, frontend_url: Optional[str] = None) -> Notifier:
    """Notification service client, or the outbox when no URL is configured"""
    if notification_service_url:
        return NotificationClient(notification_service_url, frontend_url=frontend_url)

    logger.warning("NOTIFICATION_SERVICE_URL not set; emails are kept in the in-memory outbox")
    return OutboxNotifier(frontend_url=frontend_url)
