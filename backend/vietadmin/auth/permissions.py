"""
Role permission evaluation.

A role's ``permissions`` map a module key, or ``"*"`` for every module, to the
actions it may perform; ``"*"`` as an action grants every action.

Precedence, first match wins:
1. super admin role
2. wildcard module entry granting ``"*"`` or the action
3. exact module entry granting ``"*"`` or the action
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Final

from ..models.role import WILDCARD, Role

REASON_SUPER_ADMIN: Final = "SuperAdmin"
REASON_WILDCARD: Final = "Wildcard permission"
REASON_MODULE: Final = "Module permission"
REASON_DENIED: Final = "Không có quyền thực hiện"


@dataclass(frozen=True)
class PermissionDecision:
    allowed: bool
    reason: str


def _grants(actions: Sequence[str] | None, action: str) -> bool:
    if not actions:
        return False
    return WILDCARD in actions or action in actions


def evaluate_permissions(
    permissions: Mapping[str, Sequence[str]] | None,
    module_key: str,
    action: str,
    *,
    is_super_admin: bool = False,
) -> PermissionDecision:
    if is_super_admin:
        return PermissionDecision(True, REASON_SUPER_ADMIN)

    grants = permissions or {}
    if _grants(grants.get(WILDCARD), action):
        return PermissionDecision(True, REASON_WILDCARD)
    if _grants(grants.get(module_key), action):
        return PermissionDecision(True, REASON_MODULE)
    return PermissionDecision(False, REASON_DENIED)


def evaluate_role(role: Role, module_key: str, action: str) -> PermissionDecision:
    return evaluate_permissions(
        role.permissions,
        module_key,
        action,
        is_super_admin=role.is_super_admin,
    )
