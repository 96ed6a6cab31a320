"""Permission resolution and Permit2 payloads."""

from lpflow.permissions.permit2 import (
    CachedPermitSignature,
    PermitBatch,
    PermitDetails,
    build_permit_batch,
    build_permit_batch_typed_data,
)
from lpflow.permissions.resolver import (
    PermissionRequirement,
    PermissionSet,
    StandardPermissions,
    TokenAllowance,
    ZapPermissions,
    requires_approval,
    resolve_permissions_for_amounts,
    resolve_required_permissions,
)

__all__ = [
    "TokenAllowance",
    "PermissionRequirement",
    "PermissionSet",
    "StandardPermissions",
    "ZapPermissions",
    "requires_approval",
    "resolve_permissions_for_amounts",
    "resolve_required_permissions",
    "PermitDetails",
    "PermitBatch",
    "CachedPermitSignature",
    "build_permit_batch",
    "build_permit_batch_typed_data",
]
