"""Tests for environment driven configuration."""

from __future__ import annotations

import pytest

from aws_compliance_guard.config import PipelineConfig


def test_defaults_from_empty_environment() -> None:
    config = PipelineConfig.from_env({})

    assert config.auto_remediation_enabled is False
    assert config.max_attempts == 3
    assert config.attempt_timeout == 30.0
    assert config.sns_topic_arn is None
    assert config.policy_registry_path is None


def test_values_from_environment() -> None:
    config = PipelineConfig.from_env(
        {
            "AUTO_REMEDIATION_ENABLED": "TRUE",
            "SNS_TOPIC_ARN": "arn:aws:sns:us-east-1:111122223333:alerts",
            "REMEDIATION_MAX_ATTEMPTS": "5",
            "REMEDIATION_BACKOFF_BASE": "0.5",
            "PIPELINE_MAX_WORKERS": "16",
            "AWS_DEFAULT_REGION": "eu-west-1",
        }
    )

    assert config.auto_remediation_enabled is True
    assert config.sns_topic_arn.endswith(":alerts")
    assert config.max_attempts == 5
    assert config.backoff_base == 0.5
    assert config.max_workers == 16
    assert config.region == "eu-west-1"


@pytest.mark.parametrize(
    "env",
    [
        {"AUTO_REMEDIATION_ENABLED": "maybe"},
        {"REMEDIATION_MAX_ATTEMPTS": "three"},
        {"REMEDIATION_MAX_ATTEMPTS": "0"},
        {"REMEDIATION_ATTEMPT_TIMEOUT": "-1"},
    ],
)
def test_invalid_values_are_rejected(env) -> None:
    with pytest.raises(ValueError):
        PipelineConfig.from_env(env)


def test_from_dict_rejects_unknown_keys() -> None:
    assert PipelineConfig.from_dict({"max_attempts": 2}).max_attempts == 2
    with pytest.raises(ValueError, match="Unknown"):
        PipelineConfig.from_dict({"retries": 2})


@pytest.mark.parametrize("field", ["max_attempts", "max_workers", "attempt_timeout"])
def test_validate_rejects_non_positive_overrides(field) -> None:
    config = PipelineConfig()
    setattr(config, field, 0)

    with pytest.raises(ValueError, match=f"{field} must be positive"):
        config.validate()


def test_validate_returns_config() -> None:
    config = PipelineConfig(max_attempts=2)

    assert config.validate() is config
