"""Push Webhook Client - Imperative Shell.

This module hands volunteer notifications to an HTTP push gateway.
All I/O is contained here; message formatting is in the core module.
"""

import logging
from dataclasses import dataclass

import requests


logger = logging.getLogger(__name__)


# Default timeout for webhook requests (seconds)
DEFAULT_TIMEOUT = 10


@dataclass
class WebhookResponse:
    """Response from the push gateway.

    Attributes:
        success: Whether the gateway accepted the notification
        status_code: HTTP status code (0 if no response)
        error: Error message if failed
    """
    success: bool
    status_code: int
    error: str | None = None


class PushWebhookClient:
    """Client for posting notifications to a push gateway webhook.

    This is part of the imperative shell - it handles HTTP I/O.

    Payload: {"to": <contact address>, "text": <message text>}
    """

    def __init__(self, webhook_url: str, timeout: int = DEFAULT_TIMEOUT) -> None:
        """Initialize webhook client.

        Args:
            webhook_url: Push gateway endpoint
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = timeout

    def send_notification(self, to: str, text: str) -> WebhookResponse:
        """Post one notification to the gateway.

        This method performs HTTP I/O.

        Args:
            to: Volunteer contact address
            text: Message text

        Returns:
            WebhookResponse indicating success or failure
        """
        logger.info("Posting notification to push gateway")

        try:
            response = requests.post(
                self.webhook_url,
                json={"to": to, "text": text},
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )

            if 200 <= response.status_code < 300:
                logger.info("Notification accepted by push gateway")
                return WebhookResponse(
                    success=True,
                    status_code=response.status_code,
                )
            else:
                error_text = response.text
                logger.warning(
                    "Push gateway returned non-2xx: %d - %s",
                    response.status_code,
                    error_text,
                )
                return WebhookResponse(
                    success=False,
                    status_code=response.status_code,
                    error=error_text,
                )

        except requests.Timeout:
            logger.error("Push gateway request timed out")
            return WebhookResponse(
                success=False,
                status_code=0,
                error="Request timed out",
            )
        except requests.RequestException as e:
            logger.error("Push gateway request failed: %s", str(e))
            return WebhookResponse(
                success=False,
                status_code=0,
                error=str(e),
            )
