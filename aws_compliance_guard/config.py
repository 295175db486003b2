"""Runtime configuration for the compliance pipeline."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from .executor import DEFAULT_BACKOFF_BASE, DEFAULT_BACKOFF_MAX, DEFAULT_MAX_ATTEMPTS
from .notifier import DEFAULT_SUBJECT_PREFIX
from .orchestrator import DEFAULT_MAX_WORKERS
from .remediations import DEFAULT_ATTEMPT_TIMEOUT

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}
_POSITIVE_FIELDS = ("max_attempts", "backoff_base", "backoff_max", "attempt_timeout", "max_workers")


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got '{value}'")


def _parse_number(name: str, value: str, kind: type) -> Any:
    try:
        parsed = kind(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a {kind.__name__}, got '{value}'") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be positive, got '{value}'")
    return parsed


@dataclass
class PipelineConfig:
    """Settings for building a :class:`~aws_compliance_guard.orchestrator.Pipeline`."""

    auto_remediation_enabled: bool = False
    policy_registry_path: Optional[str] = None
    sns_topic_arn: Optional[str] = None
    sns_subject_prefix: str = DEFAULT_SUBJECT_PREFIX
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_base: float = DEFAULT_BACKOFF_BASE
    backoff_max: float = DEFAULT_BACKOFF_MAX
    attempt_timeout: float = DEFAULT_ATTEMPT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    metrics_namespace: Optional[str] = None
    log_level: str = "INFO"
    region: Optional[str] = None
    profile: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """Create a config from environment variables."""

        env = os.environ if environ is None else environ
        return cls(
            auto_remediation_enabled=_parse_bool(
                "AUTO_REMEDIATION_ENABLED", env.get("AUTO_REMEDIATION_ENABLED", "false")
            ),
            policy_registry_path=env.get("POLICY_REGISTRY_PATH") or None,
            sns_topic_arn=env.get("SNS_TOPIC_ARN") or None,
            sns_subject_prefix=env.get("SNS_SUBJECT_PREFIX", DEFAULT_SUBJECT_PREFIX),
            max_attempts=_parse_number(
                "REMEDIATION_MAX_ATTEMPTS",
                env.get("REMEDIATION_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS)),
                int,
            ),
            backoff_base=_parse_number(
                "REMEDIATION_BACKOFF_BASE",
                env.get("REMEDIATION_BACKOFF_BASE", str(DEFAULT_BACKOFF_BASE)),
                float,
            ),
            backoff_max=_parse_number(
                "REMEDIATION_BACKOFF_MAX",
                env.get("REMEDIATION_BACKOFF_MAX", str(DEFAULT_BACKOFF_MAX)),
                float,
            ),
            attempt_timeout=_parse_number(
                "REMEDIATION_ATTEMPT_TIMEOUT",
                env.get("REMEDIATION_ATTEMPT_TIMEOUT", str(DEFAULT_ATTEMPT_TIMEOUT)),
                float,
            ),
            max_workers=_parse_number(
                "PIPELINE_MAX_WORKERS",
                env.get("PIPELINE_MAX_WORKERS", str(DEFAULT_MAX_WORKERS)),
                int,
            ),
            metrics_namespace=env.get("METRICS_NAMESPACE") or None,
            log_level=env.get("LOG_LEVEL", "INFO"),
            region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or None,
            profile=env.get("AWS_PROFILE") or None,
        )

    def validate(self) -> "PipelineConfig":
        """Reject non-positive numeric settings, e.g. after command line overrides."""

        for name in _POSITIVE_FIELDS:
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value!r}")
        return self

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "PipelineConfig":
        """Create a config from a mapping, rejecting unknown keys."""

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown configuration key(s): {', '.join(unknown)}")
        return cls(**dict(values))


__all__ = ["PipelineConfig"]
