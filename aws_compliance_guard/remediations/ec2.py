"""Remediation actions for Amazon EC2 security groups and EBS defaults."""
from __future__ import annotations

from typing import Any, Dict, List

from ..models import Violation
from . import RemediationContext, register_action

SSH_PORT = 22
OPEN_IPV4 = "0.0.0.0/0"
OPEN_IPV6 = "::/0"


def _covers_ssh(permission: Dict[str, Any]) -> bool:
    if permission.get("IpProtocol") == "-1":
        return True
    if permission.get("IpProtocol") not in ("tcp", "6"):
        return False
    from_port = permission.get("FromPort")
    to_port = permission.get("ToPort")
    if from_port is None or to_port is None:
        return False
    return from_port <= SSH_PORT <= to_port


def _open_ssh_permissions(group: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Return ingress permissions exposing SSH to the internet, trimmed to open ranges."""

    offending: List[Dict[str, Any]] = []
    for permission in group.get("IpPermissions", []):
        if not _covers_ssh(permission):
            continue
        ipv4 = [r for r in permission.get("IpRanges", []) if r.get("CidrIp") == OPEN_IPV4]
        ipv6 = [
            r for r in permission.get("Ipv6Ranges", []) if r.get("CidrIpv6") == OPEN_IPV6
        ]
        if not ipv4 and not ipv6:
            continue
        revoke: Dict[str, Any] = {"IpProtocol": permission["IpProtocol"]}
        for port_key in ("FromPort", "ToPort"):
            if port_key in permission:
                revoke[port_key] = permission[port_key]
        if ipv4:
            revoke["IpRanges"] = [{"CidrIp": OPEN_IPV4}]
        if ipv6:
            revoke["Ipv6Ranges"] = [{"CidrIpv6": OPEN_IPV6}]
        offending.append(revoke)
    return offending


@register_action("restricted-ssh")
def revoke_open_ssh_ingress(context: RemediationContext, violation: Violation) -> str:
    """Revoke security group ingress that exposes port 22 to any address."""

    ec2 = context.client("ec2")
    group_id = violation.resource_id
    groups = ec2.describe_security_groups(GroupIds=[group_id]).get("SecurityGroups", [])
    if not groups:
        return f"Security group {group_id} has no ingress rules to revoke."

    permissions = _open_ssh_permissions(groups[0])
    if not permissions:
        return f"Security group {group_id} does not expose SSH publicly."

    ec2.revoke_security_group_ingress(GroupId=group_id, IpPermissions=permissions)
    return f"Revoked {len(permissions)} public SSH ingress rule(s) from {group_id}."


@register_action("ec2-ebs-encryption-by-default")
def enable_ebs_default_encryption(context: RemediationContext, violation: Violation) -> str:
    """Turn on account-level EBS encryption by default for the region."""

    ec2 = context.client("ec2")
    region = violation.region or "current region"
    if ec2.get_ebs_encryption_by_default().get("EbsEncryptionByDefault", False):
        return f"EBS encryption by default already enabled in {region}."

    ec2.enable_ebs_encryption_by_default()
    return f"Enabled EBS encryption by default in {region}."


__all__ = ["enable_ebs_default_encryption", "revoke_open_ssh_ingress"]
