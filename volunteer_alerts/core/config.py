"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from volunteer_alerts.core.geo import DISTANCE_METRICS
from volunteer_alerts.core.matcher import DEFAULT_MATCH_RADIUS_KM
from volunteer_alerts.core.request import DEFAULT_MAX_BODY_LENGTH, DISASTER_TYPES
from volunteer_alerts.core.volunteer import DEFAULT_PASS_THRESHOLD


DELIVERY_CHANNEL_TYPES = ("log", "sms", "webhook")


@dataclass(frozen=True)
class DeliveryConfig:
    """Where volunteer notifications are sent.

    Attributes:
        channel_type: 'log', 'sms' (Twilio) or 'webhook' (push gateway)
        webhook_url: Push gateway URL for the 'webhook' channel
        credentials: Channel credentials as sorted (key, value) pairs
    """
    channel_type: str = "log"
    webhook_url: str = ""
    credentials: tuple[tuple[str, str], ...] | None = None


@dataclass(frozen=True)
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        match_radius_km: Default radius for matching volunteers
        radius_by_disaster_type: Radius overrides keyed by disaster type
        pass_threshold: Exam percentage needed to qualify
        max_body_length: Maximum message length in characters
        max_notifications_per_request: Nearest-N cap per request (0 = unlimited)
        distance_metric: Name of the distance metric for matching
        delivery: Notification delivery channel
        firestore_database: Firestore database name (None for default)
        requests_collection: Firestore collection for help requests
        notifications_collection: Firestore collection for notification records
        users_collection: Firestore collection holding the user directory
    """
    match_radius_km: float = DEFAULT_MATCH_RADIUS_KM
    radius_by_disaster_type: dict[str, float] = field(default_factory=dict)
    pass_threshold: float = DEFAULT_PASS_THRESHOLD
    max_body_length: int = DEFAULT_MAX_BODY_LENGTH
    max_notifications_per_request: int = 0
    distance_metric: str = "haversine"
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    firestore_database: str | None = None
    requests_collection: str = "help_requests"
    notifications_collection: str = "volunteer_notifications"
    users_collection: str = "users"


@dataclass
class ConfigIssue:
    """A configuration validation problem.

    Attributes:
        field: The field that has a problem
        message: Human-readable description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ConfigIssue] = field(default_factory=list)

    @property
    def warnings(self) -> list[ConfigIssue]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ConfigIssue]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_radius(radius_km: float, field_name: str) -> list[ConfigIssue]:
    """Validate a match radius.

    Pure function. Zero is allowed (only coincident volunteers match),
    negative values are not.
    """
    if radius_km < 0:
        return [ConfigIssue(
            field=field_name,
            message=f"Radius must not be negative, got {radius_km}",
        )]
    if radius_km == 0:
        return [ConfigIssue(
            field=field_name,
            message="Radius is 0; only volunteers at the exact location will match",
            severity="warning",
        )]
    return []


def validate_delivery(delivery: DeliveryConfig) -> list[ConfigIssue]:
    """Validate the delivery channel settings.

    Pure function.
    """
    errors = []

    if delivery.channel_type not in DELIVERY_CHANNEL_TYPES:
        errors.append(ConfigIssue(
            field="delivery.type",
            message=(
                f"Unknown delivery channel '{delivery.channel_type}' "
                f"(expected one of: {', '.join(DELIVERY_CHANNEL_TYPES)})"
            ),
        ))
        return errors

    if delivery.channel_type == "webhook":
        if not delivery.webhook_url:
            errors.append(ConfigIssue(
                field="delivery.webhook_url",
                message="Webhook channel requires webhook_url",
            ))
        elif delivery.webhook_url.startswith("${"):
            errors.append(ConfigIssue(
                field="delivery.webhook_url",
                message="Webhook URL not resolved (still contains placeholder)",
                severity="warning",
            ))

    if delivery.channel_type == "sms":
        creds = dict(delivery.credentials or ())
        missing = [
            key for key in ("account_sid", "auth_token", "from_number")
            if not creds.get(key)
        ]
        if missing:
            errors.append(ConfigIssue(
                field="delivery.credentials",
                message=f"SMS channel missing credentials: {', '.join(missing)}",
            ))
        unresolved = sorted(
            key for key, value in creds.items()
            if isinstance(value, str) and value.startswith("${")
        )
        for key in unresolved:
            errors.append(ConfigIssue(
                field=f"delivery.credentials.{key}",
                message="Credential not resolved (still contains placeholder)",
                severity="warning",
            ))

    return errors


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ConfigIssue] = []

    errors.extend(validate_radius(config.match_radius_km, "match_radius_km"))

    for disaster_type, radius in sorted(config.radius_by_disaster_type.items()):
        field_name = f"radius_by_disaster_type.{disaster_type}"
        if disaster_type not in DISASTER_TYPES:
            errors.append(ConfigIssue(
                field=field_name,
                message=f"Unknown disaster type '{disaster_type}'",
                severity="warning",
            ))
        errors.extend(validate_radius(radius, field_name))

    if not 0 <= config.pass_threshold <= 100:
        errors.append(ConfigIssue(
            field="pass_threshold",
            message=f"Pass threshold {config.pass_threshold} out of range [0, 100]",
        ))

    if config.max_body_length <= 0:
        errors.append(ConfigIssue(
            field="max_body_length",
            message=f"Max body length must be positive, got {config.max_body_length}",
        ))

    if config.max_notifications_per_request < 0:
        errors.append(ConfigIssue(
            field="max_notifications_per_request",
            message="Notification cap must not be negative (use 0 for unlimited)",
        ))

    if config.distance_metric not in DISTANCE_METRICS:
        errors.append(ConfigIssue(
            field="distance_metric",
            message=(
                f"Unknown distance metric '{config.distance_metric}' "
                f"(available: {', '.join(sorted(DISTANCE_METRICS))})"
            ),
        ))

    errors.extend(validate_delivery(config.delivery))

    if config.delivery.channel_type == "log":
        errors.append(ConfigIssue(
            field="delivery.type",
            message="Notifications are only logged, not delivered",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
