"""Remediation actions for AWS KMS customer-managed keys."""
from __future__ import annotations

from ..errors import PermanentRemediationError
from ..models import Violation
from . import RemediationContext, register_action


@register_action("cmk-backing-key-rotation-enabled")
def enable_key_rotation(context: RemediationContext, violation: Violation) -> str:
    """Enable automatic rotation on a symmetric customer-managed key."""

    kms = context.client("kms")
    key_id = violation.resource_id
    metadata = kms.describe_key(KeyId=key_id)["KeyMetadata"]
    if metadata.get("KeyManager") == "AWS":
        raise PermanentRemediationError(f"Key {key_id} is AWS managed; rotation cannot be changed.")
    if metadata.get("KeyState") != "Enabled":
        raise PermanentRemediationError(
            f"Key {key_id} is in state {metadata.get('KeyState')}; rotation requires an enabled key."
        )

    if kms.get_key_rotation_status(KeyId=key_id).get("KeyRotationEnabled", False):
        return f"Key rotation already enabled for {key_id}."

    kms.enable_key_rotation(KeyId=key_id)
    return f"Enabled automatic key rotation for {key_id}."


__all__ = ["enable_key_rotation"]
