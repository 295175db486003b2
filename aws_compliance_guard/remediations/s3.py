"""Remediation actions for Amazon S3 buckets."""
from __future__ import annotations

from botocore.exceptions import ClientError

from ..models import Violation
from ..utils import error_code
from . import RemediationContext, register_action

PUBLIC_ACCESS_FLAGS = (
    "BlockPublicAcls",
    "IgnorePublicAcls",
    "BlockPublicPolicy",
    "RestrictPublicBuckets",
)


@register_action("s3-bucket-public-access")
def block_bucket_public_access(context: RemediationContext, violation: Violation) -> str:
    """Enable every flag of the bucket-level public access block."""

    s3 = context.client("s3")
    name = violation.resource_id
    try:
        config = s3.get_public_access_block(Bucket=name).get(
            "PublicAccessBlockConfiguration", {}
        )
    except ClientError as exc:
        if error_code(exc) != "NoSuchPublicAccessBlockConfiguration":
            raise
        config = {}

    if all(config.get(flag, False) for flag in PUBLIC_ACCESS_FLAGS):
        return f"Public access block already enabled on bucket {name}."

    s3.put_public_access_block(
        Bucket=name,
        PublicAccessBlockConfiguration={flag: True for flag in PUBLIC_ACCESS_FLAGS},
    )
    return f"Enabled public access block on bucket {name}."


@register_action("s3-bucket-server-side-encryption-enabled")
def enable_bucket_encryption(context: RemediationContext, violation: Violation) -> str:
    """Apply SSE-S3 default encryption when the bucket has none."""

    s3 = context.client("s3")
    name = violation.resource_id
    try:
        s3.get_bucket_encryption(Bucket=name)
    except ClientError as exc:
        if error_code(exc) != "ServerSideEncryptionConfigurationNotFoundError":
            raise
    else:
        return f"Default encryption already configured on bucket {name}."

    s3.put_bucket_encryption(
        Bucket=name,
        ServerSideEncryptionConfiguration={
            "Rules": [
                {"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}
            ]
        },
    )
    return f"Enabled AES256 default encryption on bucket {name}."


__all__ = ["block_bucket_public_access", "enable_bucket_encryption"]
