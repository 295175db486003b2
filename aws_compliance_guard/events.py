"""Parsing of AWS Config compliance-change payloads."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .errors import EventParseError
from .models import COMPLIANCE_STATES, ComplianceEvent

CONFIG_COMPLIANCE_DETAIL_TYPE = "Config Rules Compliance Change"

# AWS Config reports INSUFFICIENT_DATA for rules it could not evaluate.
_STATE_ALIASES = {"INSUFFICIENT_DATA": "NOT_APPLICABLE"}


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise EventParseError(f"Invalid timestamp '{value}'") from exc
    elif value is None:
        return datetime.now(timezone.utc)
    else:
        raise EventParseError(f"Invalid timestamp {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _normalize_state(value: Any) -> str:
    state = str(value or "").strip().upper()
    state = _STATE_ALIASES.get(state, state)
    if state not in COMPLIANCE_STATES:
        raise EventParseError(f"Unknown compliance state '{value}'")
    return state


def _require(value: Optional[str], name: str) -> str:
    if not value:
        raise EventParseError(f"Compliance event is missing '{name}'")
    return value


def _from_eventbridge(payload: Mapping[str, Any]) -> ComplianceEvent:
    detail = payload.get("detail") or {}
    result = detail.get("newEvaluationResult") or {}
    qualifier = (result.get("evaluationResultIdentifier") or {}).get(
        "evaluationResultQualifier"
    ) or {}

    rule_id = detail.get("configRuleName") or qualifier.get("configRuleName")
    resource_id = detail.get("resourceId") or qualifier.get("resourceId")
    resource_type = detail.get("resourceType") or qualifier.get("resourceType") or "UNKNOWN"
    observed = result.get("resultRecordedTime") or payload.get("time")

    return ComplianceEvent(
        rule_id=_require(rule_id, "configRuleName"),
        resource_id=_require(resource_id, "resourceId"),
        resource_type=resource_type,
        new_state=_normalize_state(result.get("complianceType")),  # type: ignore[arg-type]
        observed_at=_parse_timestamp(observed),
        account_id=payload.get("account") or detail.get("awsAccountId"),
        region=payload.get("region") or detail.get("awsRegion"),
        annotation=result.get("annotation"),
    )


def _from_record(payload: Mapping[str, Any]) -> ComplianceEvent:
    def pick(*names: str) -> Any:
        for name in names:
            if payload.get(name) is not None:
                return payload[name]
        return None

    return ComplianceEvent(
        rule_id=_require(pick("ruleId", "rule_id"), "ruleId"),
        resource_id=_require(pick("resourceId", "resource_id"), "resourceId"),
        resource_type=pick("resourceType", "resource_type") or "UNKNOWN",
        new_state=_normalize_state(pick("newState", "new_state")),  # type: ignore[arg-type]
        observed_at=_parse_timestamp(pick("observedAt", "observed_at")),
        account_id=pick("accountId", "account_id"),
        region=pick("region"),
        annotation=pick("annotation"),
    )


def parse_config_event(payload: Mapping[str, Any]) -> ComplianceEvent:
    """Convert an EventBridge envelope or a flat record into a :class:`ComplianceEvent`."""

    if not isinstance(payload, Mapping):
        raise EventParseError(f"Compliance event must be a JSON object, got {type(payload).__name__}")
    if "detail" in payload:
        detail_type = payload.get("detail-type")
        if detail_type and detail_type != CONFIG_COMPLIANCE_DETAIL_TYPE:
            raise EventParseError(f"Unsupported EventBridge detail-type '{detail_type}'")
        return _from_eventbridge(payload)
    return _from_record(payload)


__all__ = ["CONFIG_COMPLIANCE_DETAIL_TYPE", "parse_config_event"]
