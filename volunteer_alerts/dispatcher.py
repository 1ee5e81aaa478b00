"""Notification Dispatcher - Imperative Shell.

Creates one NotificationRecord per (request, volunteer) pair and hands
each notification to the delivery channel.
"""

import logging
from datetime import datetime
from typing import Iterable

from volunteer_alerts.core.dedup import filter_already_notified
from volunteer_alerts.core.errors import DeliveryFailure
from volunteer_alerts.core.formatter import format_notification_text
from volunteer_alerts.core.notification import NotificationRecord, create_notification_record
from volunteer_alerts.core.request import HelpRequest
from volunteer_alerts.core.volunteer import Volunteer
from volunteer_alerts.shell.delivery import DeliveryFunction


logger = logging.getLogger(__name__)


class Dispatcher:
    """Dispatches help-request notifications to matched volunteers.

    Delivery is fire-and-forget: the record means "notification
    attempted", and a failed delivery never removes it.
    """

    def __init__(self, deliver: DeliveryFunction) -> None:
        """Initialize dispatcher.

        Args:
            deliver: Callable taking (contact_address, text)
        """
        self.deliver = deliver

    def _deliver(self, volunteer: Volunteer, text: str) -> None:
        """Hand one message to the delivery channel.

        Raises:
            DeliveryFailure: If the channel raised or reported failure
        """
        try:
            response = self.deliver(volunteer.contact_address, text)
        except Exception as e:
            raise DeliveryFailure(f"Delivery to volunteer {volunteer.id} raised: {e}") from e

        if getattr(response, "success", True) is False:
            raise DeliveryFailure(
                f"Delivery to volunteer {volunteer.id} failed: "
                f"{getattr(response, 'error', None) or 'unknown error'}"
            )

    def dispatch(
        self,
        request: HelpRequest,
        matched: Iterable[Volunteer],
        now: datetime | None = None,
    ) -> list[NotificationRecord]:
        """Notify matched volunteers not yet notified for this request.

        Appends each newly notified volunteer to
        request.notified_volunteer_ids. Calling this again with the same
        request and volunteers creates nothing.

        Args:
            request: Request being dispatched (mutated)
            matched: Matched volunteers, nearest first
            now: Record timestamp (default: now, UTC)

        Returns:
            Newly created records only
        """
        pending = filter_already_notified(matched, request.notified_volunteer_ids)
        if not pending:
            logger.info("No new volunteers to notify for request %s", request.id)
            return []

        text = format_notification_text(request)
        records = []
        failed = 0

        for volunteer in pending:
            # Record and notified-list entry are created together, before delivery
            record = create_notification_record(request.id, volunteer.id, now)
            request.mark_notified(volunteer.id)
            records.append(record)

            try:
                self._deliver(volunteer, text)
            except DeliveryFailure as e:
                logger.warning("%s", e)
                failed += 1

        logger.info(
            "Dispatched %d notifications for request %s (%d delivery failures)",
            len(records),
            request.id,
            failed,
        )
        return records
