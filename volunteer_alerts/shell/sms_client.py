"""SMS Client via Twilio - Imperative Shell.

This module handles sending SMS notifications to volunteers via Twilio.
All I/O is contained here; message formatting is in the core module.
"""

import logging
from dataclasses import dataclass

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException


logger = logging.getLogger(__name__)


@dataclass
class SmsResponse:
    """Response from an SMS send attempt.

    Attributes:
        success: Whether Twilio accepted the message
        message_sid: Twilio message SID if successful
        error: Error message if failed
    """
    success: bool
    message_sid: str | None = None
    error: str | None = None


@dataclass
class SmsCredentials:
    """Twilio credentials for the SMS API.

    Attributes:
        account_sid: Twilio Account SID
        auth_token: Twilio Auth Token
        from_number: Sender number in E.164 format (+14155238886)
    """
    account_sid: str
    auth_token: str
    from_number: str


class SmsClient:
    """Client for sending SMS messages via Twilio.

    This is part of the imperative shell - it handles I/O.
    """

    def __init__(self, credentials: SmsCredentials) -> None:
        """Initialize SMS client.

        Args:
            credentials: Twilio credentials
        """
        self.credentials = credentials
        self._client: Client | None = None

    @property
    def client(self) -> Client:
        """Lazy initialization of the Twilio client."""
        if self._client is None:
            self._client = Client(
                self.credentials.account_sid,
                self.credentials.auth_token,
            )
        return self._client

    def send_message(self, text: str, to_number: str) -> SmsResponse:
        """Send an SMS via Twilio.

        This method performs HTTP I/O.

        Args:
            text: Message text
            to_number: Recipient number in E.164 format

        Returns:
            SmsResponse indicating success or failure
        """
        if not to_number:
            return SmsResponse(success=False, error="Volunteer has no phone number")

        logger.info("Sending SMS via Twilio")

        try:
            message = self.client.messages.create(
                body=text,
                from_=self.credentials.from_number,
                to=to_number,
            )

            logger.info("SMS sent: %s", message.sid)
            return SmsResponse(
                success=True,
                message_sid=message.sid,
            )

        except TwilioRestException as e:
            logger.error("Twilio API error: %s", str(e))
            return SmsResponse(
                success=False,
                error=f"Twilio error: {e.msg}",
            )
        except Exception as e:
            logger.error("SMS send failed: %s", str(e))
            return SmsResponse(
                success=False,
                error=str(e),
            )
