"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, DeliveryConfig) are defined in volunteer_alerts/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Optional

import yaml

from volunteer_alerts.core.config import Config, DeliveryConfig
from volunteer_alerts.core.matcher import DEFAULT_MATCH_RADIUS_KM
from volunteer_alerts.core.request import DEFAULT_MAX_BODY_LENGTH
from volunteer_alerts.core.volunteer import DEFAULT_PASS_THRESHOLD
from volunteer_alerts.shell.secret_manager_client import SecretManagerClient, SecretManagerConfig


logger = logging.getLogger(__name__)


def _get_secret_manager_client() -> Optional[SecretManagerClient]:
    """Get or create a Secret Manager client.

    Returns None if no GCP project can be determined (e.g., local development).
    """
    project_id = os.environ.get("GCP_PROJECT")
    if not project_id:
        # Try to get from gcloud config
        try:
            result = subprocess.run(
                ["gcloud", "config", "get-value", "project"],
                capture_output=True,
                text=True,
                timeout=2,
            )
            if result.returncode == 0 and result.stdout.strip():
                project_id = result.stdout.strip()
        except (OSError, subprocess.SubprocessError):
            logger.debug("gcloud not available; Secret Manager disabled")

    if project_id:
        return SecretManagerClient(SecretManagerConfig(project_id=project_id))
    return None


def _resolve_value(value: Any, secret_client: Optional[SecretManagerClient] = None) -> Any:
    """Resolve a value that may contain secret or env var placeholders.

    Args:
        value: Value to resolve (may contain ${...} placeholders)
        secret_client: Client for resolving secrets

    Returns:
        Resolved value
    """
    if not isinstance(value, str):
        return value

    if secret_client:
        return secret_client.resolve(value)

    # No secret client - only handle env vars
    if value.startswith("${") and value.endswith("}"):
        var_spec = value[2:-1]
        if not var_spec.startswith("secret:"):
            env_value = os.environ.get(var_spec)
            if env_value:
                return env_value
            logger.warning("Environment variable %s not set", var_spec)

    return value


def _parse_radius_overrides(data: dict[str, Any] | None) -> dict[str, float]:
    """Parse per-disaster-type radius overrides."""
    if not data:
        return {}
    return {str(k): float(v) for k, v in data.items()}


def _parse_delivery(
    data: dict[str, Any] | None,
    secret_client: Optional[SecretManagerClient] = None,
) -> DeliveryConfig:
    """Parse the delivery channel from config data.

    Supports:
    - log: no settings
    - sms: credentials dict with account_sid, auth_token, from_number
    - webhook: webhook_url
    """
    if not data:
        return DeliveryConfig()

    webhook_url = ""
    if "webhook_url" in data:
        webhook_url = _resolve_value(data["webhook_url"], secret_client)

    credentials = None
    if "credentials" in data:
        resolved = {
            key: _resolve_value(value, secret_client)
            for key, value in data["credentials"].items()
        }
        # Tuple of pairs keeps DeliveryConfig hashable
        credentials = tuple(sorted(resolved.items()))

    return DeliveryConfig(
        channel_type=data.get("type", "log"),
        webhook_url=webhook_url,
        credentials=credentials,
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only placeholder expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    secret_client = None
    if "delivery" in data:
        secret_client = _get_secret_manager_client()

    return Config(
        match_radius_km=float(data.get("match_radius_km", DEFAULT_MATCH_RADIUS_KM)),
        radius_by_disaster_type=_parse_radius_overrides(data.get("radius_by_disaster_type")),
        pass_threshold=float(data.get("pass_threshold", DEFAULT_PASS_THRESHOLD)),
        max_body_length=int(data.get("max_body_length", DEFAULT_MAX_BODY_LENGTH)),
        max_notifications_per_request=int(data.get("max_notifications_per_request", 0)),
        distance_metric=data.get("distance_metric", "haversine"),
        delivery=_parse_delivery(data.get("delivery"), secret_client),
        firestore_database=data.get("firestore_database"),
        requests_collection=data.get("requests_collection", "help_requests"),
        notifications_collection=data.get("notifications_collection", "volunteer_notifications"),
        users_collection=data.get("users_collection", "users"),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: radius %.1f km (%d overrides), delivery via %s",
        config.match_radius_km,
        len(config.radius_by_disaster_type),
        config.delivery.channel_type,
    )

    return config


def load_config_from_env() -> Config:
    """Load minimal configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        MATCH_RADIUS_KM: Default match radius
        PASS_THRESHOLD: Exam pass percentage
        MAX_NOTIFICATIONS_PER_REQUEST: Nearest-N cap (0 = unlimited)
        DELIVERY_CHANNEL: 'log', 'sms' or 'webhook'
        PUSH_WEBHOOK_URL: Push gateway URL for the webhook channel
        TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER: SMS credentials
        FIRESTORE_DATABASE: Firestore database name

    Returns:
        Config object from environment
    """
    channel_type = os.environ.get("DELIVERY_CHANNEL", "log")

    credentials = None
    if channel_type == "sms":
        credentials = tuple(sorted({
            "account_sid": os.environ.get("TWILIO_ACCOUNT_SID", ""),
            "auth_token": os.environ.get("TWILIO_AUTH_TOKEN", ""),
            "from_number": os.environ.get("TWILIO_FROM_NUMBER", ""),
        }.items()))

    delivery = DeliveryConfig(
        channel_type=channel_type,
        webhook_url=os.environ.get("PUSH_WEBHOOK_URL", ""),
        credentials=credentials,
    )

    return Config(
        match_radius_km=float(os.environ.get("MATCH_RADIUS_KM", str(DEFAULT_MATCH_RADIUS_KM))),
        pass_threshold=float(os.environ.get("PASS_THRESHOLD", str(DEFAULT_PASS_THRESHOLD))),
        max_notifications_per_request=int(os.environ.get("MAX_NOTIFICATIONS_PER_REQUEST", "0")),
        delivery=delivery,
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
    )
