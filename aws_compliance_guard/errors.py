"""Exception hierarchy for the compliance guard pipeline."""
from __future__ import annotations


class ComplianceGuardError(Exception):
    """Base class for errors raised by :mod:`aws_compliance_guard`."""


class RegistryError(ComplianceGuardError, ValueError):
    """Raised when a policy registry document is malformed or inconsistent."""


class EventParseError(ComplianceGuardError, ValueError):
    """Raised when an inbound payload cannot be turned into a compliance event."""


class RemediationError(ComplianceGuardError):
    """Base class for failures raised by remediation actions."""


class TransientRemediationError(RemediationError):
    """A failure that may succeed when retried (throttling, connectivity)."""


class PermanentRemediationError(RemediationError):
    """A failure that will not succeed on retry (access denied, missing resource)."""


class RemediationLogicError(RemediationError):
    """An auto-remediable rule reached the executor without a mapped action."""


class DeliveryError(ComplianceGuardError):
    """Raised by notifiers when an alert could not be published."""


__all__ = [
    "ComplianceGuardError",
    "DeliveryError",
    "EventParseError",
    "PermanentRemediationError",
    "RegistryError",
    "RemediationError",
    "RemediationLogicError",
    "TransientRemediationError",
]
