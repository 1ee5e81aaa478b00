"""Unit tests for configuration validation.

Pure function tests - no mocks needed.
"""

import dataclasses

import pytest

from volunteer_alerts.core.config import (
    Config,
    DeliveryConfig,
    validate_config,
    validate_delivery,
    validate_radius,
)


SMS_CREDS = (
    ("account_sid", "AC123"),
    ("auth_token", "token"),
    ("from_number", "+15005550006"),
)


class TestValidateRadius:
    """Tests for validate_radius()."""

    def test_positive_is_fine(self):
        assert validate_radius(10, "match_radius_km") == []

    def test_negative_is_error(self):
        issues = validate_radius(-1, "match_radius_km")
        assert issues[0].severity == "error"

    def test_zero_is_warning(self):
        issues = validate_radius(0, "match_radius_km")
        assert issues[0].severity == "warning"


class TestValidateDelivery:
    """Tests for validate_delivery()."""

    def test_log_channel(self):
        assert validate_delivery(DeliveryConfig()) == []

    def test_unknown_channel(self):
        issues = validate_delivery(DeliveryConfig(channel_type="pigeon"))
        assert issues[0].field == "delivery.type"

    def test_webhook_needs_url(self):
        issues = validate_delivery(DeliveryConfig(channel_type="webhook"))
        assert issues[0].field == "delivery.webhook_url"
        assert issues[0].severity == "error"

    def test_webhook_placeholder_warns(self):
        issues = validate_delivery(DeliveryConfig(
            channel_type="webhook",
            webhook_url="${PUSH_WEBHOOK_URL}",
        ))
        assert issues[0].severity == "warning"

    def test_sms_with_credentials(self):
        assert validate_delivery(DeliveryConfig(channel_type="sms", credentials=SMS_CREDS)) == []

    def test_sms_missing_credentials(self):
        issues = validate_delivery(DeliveryConfig(channel_type="sms"))
        assert "account_sid" in issues[0].message
        assert issues[0].severity == "error"

    def test_sms_unresolved_credential_warns(self):
        creds = (("account_sid", "${secret:twilio-sid}"),) + SMS_CREDS[1:]
        issues = validate_delivery(DeliveryConfig(channel_type="sms", credentials=creds))
        assert [i.field for i in issues] == ["delivery.credentials.account_sid"]
        assert issues[0].severity == "warning"


class TestValidateConfig:
    """Tests for validate_config()."""

    def test_defaults_are_valid(self):
        result = validate_config(Config())

        assert result.valid is True
        # Log-only delivery is worth a warning
        assert [w.field for w in result.warnings] == ["delivery.type"]

    def test_negative_radius(self):
        result = validate_config(Config(match_radius_km=-5))
        assert result.valid is False

    def test_unknown_disaster_type_override_warns(self):
        result = validate_config(Config(radius_by_disaster_type={"meteor": 50}))

        assert result.valid is True
        assert any(w.field == "radius_by_disaster_type.meteor" for w in result.warnings)

    def test_negative_override_is_error(self):
        result = validate_config(Config(radius_by_disaster_type={"flood": -1}))
        assert result.valid is False

    def test_threshold_out_of_range(self):
        result = validate_config(Config(pass_threshold=120))
        assert [e.field for e in result.critical_errors] == ["pass_threshold"]

    def test_bad_body_length(self):
        result = validate_config(Config(max_body_length=0))
        assert result.valid is False

    def test_negative_notification_cap(self):
        result = validate_config(Config(max_notifications_per_request=-1))
        assert result.valid is False

    def test_unknown_metric(self):
        result = validate_config(Config(distance_metric="manhattan"))
        assert [e.field for e in result.critical_errors] == ["distance_metric"]


class TestConfigImmutability:
    """Config is a frozen value object."""

    def test_assignment_raises(self):
        config = Config()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.match_radius_km = 99

    def test_replace_builds_new_config(self):
        config = Config()
        changed = dataclasses.replace(config, pass_threshold=90)
        assert changed.pass_threshold == 90
        assert config.pass_threshold != 90
