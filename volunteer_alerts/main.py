"""Cloud Function Entry Point.

This module provides the HTTP entry points for Google Cloud Functions.
They are thin wrappers that load configuration and invoke the orchestrator.
"""

import logging
import os
from typing import Any

import functions_framework
from flask import Request

from volunteer_alerts.core.config import Config, validate_config
from volunteer_alerts.core.errors import VolunteerAlertsError
from volunteer_alerts.core.serialization import (
    record_to_dict,
    request_to_dict,
    to_json_ready,
    volunteer_state_to_dict,
)
from volunteer_alerts.core.volunteer import Volunteer
from volunteer_alerts.orchestrator import Orchestrator
from volunteer_alerts.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        config = load_config(config_path)
    elif os.environ.get("DELIVERY_CHANNEL"):
        # Simple env-based config
        config = load_config_from_env()
    else:
        # Try default config path
        config = load_config()

    result = validate_config(config)
    for issue in result.warnings:
        logger.warning("Config %s: %s", issue.field, issue.message)
    if not result.valid:
        messages = "; ".join(f"{e.field}: {e.message}" for e in result.critical_errors)
        raise ValueError(f"Invalid configuration: {messages}")

    return config


@functions_framework.http
def submit_message(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function: submit an emergency message.

    Expects a JSON body such as:
        {"userId": "u1", "message": "Trapped on roof", "type": "help",
         "location": {"lat": 23.81, "lng": 90.41, "address": "Mirpur 10"}}

    Args:
        request: Flask request object

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    if request.method != "POST":
        return {"status": "error", "message": "Method not allowed"}, 405

    payload = request.get_json(silent=True)
    if payload is None:
        return {"status": "error", "message": "Request body must be JSON"}, 400

    try:
        orchestrator = Orchestrator(_get_config())
        help_request = orchestrator.submit(payload)

    except VolunteerAlertsError as e:
        logger.warning("Rejected submission: %s", e.message)
        return {"status": "error", **e.to_dict()}, e.status_code

    except Exception as e:
        logger.exception("Unexpected error handling submission")
        return {"status": "error", "message": str(e)}, 500

    response = {
        "status": "partial_failure" if help_request.error else "success",
        "request": to_json_ready(request_to_dict(help_request)),
        "notified_count": len(help_request.notified_volunteer_ids),
    }

    # 207 = Multi-Status: stored, but volunteers were not notified
    status_code = 207 if help_request.error else 201
    return response, status_code


@functions_framework.http
def list_volunteer_notifications(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function: list notifications sent to a volunteer.

    Query params:
        volunteer_id: Directory ID of the volunteer

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    volunteer_id = request.args.get("volunteer_id")
    if not volunteer_id:
        return {"status": "error", "message": "volunteer_id is required"}, 400

    try:
        orchestrator = Orchestrator(_get_config())
        records = orchestrator.list_notifications(volunteer_id)

    except Exception as e:
        logger.exception("Failed to list notifications for %s", volunteer_id)
        return {"status": "error", "message": str(e)}, 500

    return {
        "status": "success",
        "volunteer_id": volunteer_id,
        "notifications": [to_json_ready(record_to_dict(r)) for r in records],
        "count": len(records),
    }, 200


@functions_framework.http
def list_help_requests(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function: list the most recent help requests.

    Query params:
        limit: Maximum number of requests (default 50)

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    try:
        limit = int(request.args.get("limit", 50))
    except (TypeError, ValueError):
        return {"status": "error", "message": "limit must be an integer"}, 400
    if limit <= 0:
        return {"status": "error", "message": "limit must be positive"}, 400

    try:
        orchestrator = Orchestrator(_get_config())
        requests = orchestrator.recent_requests(limit)

    except Exception as e:
        logger.exception("Failed to list help requests")
        return {"status": "error", "message": str(e)}, 500

    return {
        "status": "success",
        "requests": [to_json_ready(request_to_dict(r)) for r in requests],
        "count": len(requests),
    }, 200


def _volunteer_response(volunteer: Volunteer) -> dict[str, Any]:
    return {
        "status": "success",
        "volunteer": to_json_ready({"id": volunteer.id, **volunteer_state_to_dict(volunteer)}),
    }


@functions_framework.http
def submit_exam_result(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function: record a volunteer's qualification exam.

    Expects a JSON body such as:
        {"volunteerId": "u1", "correctAnswers": 8, "totalQuestions": 10}

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    if request.method != "POST":
        return {"status": "error", "message": "Method not allowed"}, 405

    payload = request.get_json(silent=True) or {}
    volunteer_id = payload.get("volunteerId")
    correct = payload.get("correctAnswers")
    total = payload.get("totalQuestions")
    if not volunteer_id or not isinstance(correct, int) or not isinstance(total, int):
        return {
            "status": "error",
            "message": "volunteerId, correctAnswers and totalQuestions are required",
        }, 400

    try:
        orchestrator = Orchestrator(_get_config())
        volunteer = orchestrator.record_exam_result(volunteer_id, correct, total)

    except KeyError:
        return {"status": "error", "message": f"Unknown volunteer: {volunteer_id}"}, 404

    except ValueError as e:
        return {"status": "error", "message": str(e)}, 400

    except Exception as e:
        logger.exception("Failed to record exam result for %s", volunteer_id)
        return {"status": "error", "message": str(e)}, 500

    return _volunteer_response(volunteer), 200


@functions_framework.http
def update_availability(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function: switch a volunteer's availability.

    Expects a JSON body such as:
        {"volunteerId": "u1", "isAvailable": true}

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    if request.method != "POST":
        return {"status": "error", "message": "Method not allowed"}, 405

    payload = request.get_json(silent=True) or {}
    volunteer_id = payload.get("volunteerId")
    available = payload.get("isAvailable")
    if not volunteer_id or not isinstance(available, bool):
        return {"status": "error", "message": "volunteerId and isAvailable are required"}, 400

    try:
        orchestrator = Orchestrator(_get_config())
        volunteer = orchestrator.update_availability(volunteer_id, available)

    except KeyError:
        return {"status": "error", "message": f"Unknown volunteer: {volunteer_id}"}, 404

    except Exception as e:
        logger.exception("Failed to update availability for %s", volunteer_id)
        return {"status": "error", "message": str(e)}, 500

    return _volunteer_response(volunteer), 200
