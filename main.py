"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the volunteer_alerts package.
"""

from volunteer_alerts.main import (
    list_help_requests,
    list_volunteer_notifications,
    submit_exam_result,
    submit_message,
    update_availability,
)

__all__ = [
    "list_help_requests",
    "list_volunteer_notifications",
    "submit_exam_result",
    "submit_message",
    "update_availability",
]
