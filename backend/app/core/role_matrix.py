from __future__ import annotations

from typing import Iterable

# 中文注释：
# - 这里集中定义“角色 -> 动作”权限矩阵，避免权限逻辑散落在各路由。
# - writer 不是数据库里的成员角色：任何登录用户都是自己稿件的 writer。
# - reader/editor/admin 按 publication 维度授予（publication_members 表）。

ADMIN_ROLE = "admin"
WRITER_ROLE = "writer"
READER_ROLE = "reader"
EDITOR_ROLE = "editor"

MEMBER_ROLES = (READER_ROLE, EDITOR_ROLE, ADMIN_ROLE)

ROLE_ACTIONS: dict[str, set[str]] = {
    WRITER_ROLE: {
        "submission:create",
        "submission:withdraw",
        "submission:view_own",
        "file:upload",
        "file:download_own",
    },
    READER_ROLE: {
        "review:view_assignment",
        "review:submit",
    },
    EDITOR_ROLE: {
        "submission:view_publication",
        "submission:change_status",
        "submission:assign",
        "decision:record",
        "form:manage",
        "dashboard:publication",
    },
    ADMIN_ROLE: {
        "*",
    },
}


def normalize_roles(roles: Iterable[str] | None) -> set[str]:
    """
    将输入角色归一化（小写、去空）。
    """
    out: set[str] = set()
    for raw in roles or []:
        role = str(raw or "").strip().lower()
        if not role:
            continue
        out.add(role)
    return out


def can_perform_action(*, action: str, roles: Iterable[str] | None) -> bool:
    """
    判定角色集合是否可执行某动作。

    中文注释：
    - admin 拥有全局通配权限（包括管理员强制改状态）；
    - 其余角色按 ROLE_ACTIONS 显式授权。
    """
    normalized = normalize_roles(roles)
    if ADMIN_ROLE in normalized:
        return True

    for role in normalized:
        allowed = ROLE_ACTIONS.get(role) or set()
        if "*" in allowed or action in allowed:
            return True
    return False
