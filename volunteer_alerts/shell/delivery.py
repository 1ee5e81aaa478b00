"""Delivery channels - Imperative Shell.

A delivery function takes (contact_address, text) and hands the message
to a channel. Its return value is only inspected for a falsy `success`
attribute; delivery outcome never affects the notification record.
"""

import logging
from typing import Any, Callable

from volunteer_alerts.core.config import DeliveryConfig
from volunteer_alerts.shell.sms_client import SmsClient, SmsCredentials
from volunteer_alerts.shell.webhook_client import PushWebhookClient


logger = logging.getLogger(__name__)


DeliveryFunction = Callable[[str, str], Any]


class LogDelivery:
    """Delivery channel that only logs what would be sent.

    Used for local runs and deployments without an SMS provider.
    """

    def __call__(self, contact_address: str, text: str) -> None:
        logger.info("SMS would be sent to %s: %s", contact_address, text)


def build_delivery(
    config: DeliveryConfig,
    sms_client: SmsClient | None = None,
    webhook_client: PushWebhookClient | None = None,
) -> DeliveryFunction:
    """Create the delivery function for the configured channel.

    Args:
        config: Delivery configuration
        sms_client: SMS client (created from credentials if not provided)
        webhook_client: Webhook client (created from webhook_url if not provided)

    Returns:
        Callable taking (contact_address, text)

    Raises:
        ValueError: If the channel type is unknown or SMS credentials
            are incomplete
    """
    if config.channel_type == "sms":
        if sms_client is None:
            creds = dict(config.credentials or ())
            try:
                sms_client = SmsClient(SmsCredentials(
                    account_sid=creds["account_sid"],
                    auth_token=creds["auth_token"],
                    from_number=creds["from_number"],
                ))
            except KeyError as e:
                raise ValueError(f"SMS credentials missing key: {e}") from e
        client = sms_client
        return lambda contact_address, text: client.send_message(text, contact_address)

    if config.channel_type == "webhook":
        hook = webhook_client or PushWebhookClient(config.webhook_url)
        return hook.send_notification

    if config.channel_type == "log":
        return LogDelivery()

    raise ValueError(f"Unknown delivery channel '{config.channel_type}'")
