import logging
import os
from typing import Any, Optional, Set

from fastapi import Depends

from app.core.auth_utils import get_current_user
from app.core.errors import Unauthorized, UpstreamFailure, is_unique_violation
from app.core.role_matrix import ADMIN_ROLE, MEMBER_ROLES, WRITER_ROLE, can_perform_action, normalize_roles
from app.lib.api_client import supabase_admin

logger = logging.getLogger("submeet.roles")


def _parse_admin_emails() -> Set[str]:
    raw = os.environ.get("ADMIN_EMAILS", "")
    return {e.strip().lower() for e in raw.split(",") if e.strip()}


def _is_admin_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return email.strip().lower() in _parse_admin_emails()


def load_profile(identity: dict, client: Any = None) -> dict:
    """
    按 email 解析当前用户在 `users` 表中的记录，并附带各 publication 的成员角色。

    中文注释:
    1) 身份由 Supabase Auth 提供，email 是唯一关联键；业务表的 user id 以 `users.id` 为准。
    2) 首次访问时自动创建 users 记录（与登录适配器行为一致）。
    3) 若 email 在 ADMIN_EMAILS 中，则视为全局 admin，便于本地/演示测试。
    """
    db = client or supabase_admin
    email = str(identity.get("email") or "").strip().lower()

    try:
        resp = db.table("users").select("id,email,name").eq("email", email).limit(1).execute()
        rows = getattr(resp, "data", None) or []
        user = rows[0] if rows else None
        if user is None:
            try:
                inserted = (
                    db.table("users")
                    .insert({"id": identity.get("id"), "email": email})
                    .execute()
                )
            except Exception as e:
                # 同一用户的并发首次请求：另一请求已建好记录，重新读取即可
                if not is_unique_violation(e):
                    raise
                inserted = db.table("users").select("id,email,name").eq("email", email).limit(1).execute()
            user = ((getattr(inserted, "data", None) or [None])[0]) or {
                "id": identity.get("id"),
                "email": email,
            }

        members_resp = (
            db.table("publication_members")
            .select("publication_id,role")
            .eq("user_id", user["id"])
            .execute()
        )
        member_rows = getattr(members_resp, "data", None) or []
    except Exception as e:
        logger.error("Failed to load profile for %s: %s", email, e, exc_info=True)
        raise UpstreamFailure(str(e)) from e

    memberships: dict[str, str] = {}
    for row in member_rows:
        role = str(row.get("role") or "").strip().lower()
        pid = str(row.get("publication_id") or "").strip()
        if pid and role in MEMBER_ROLES:
            memberships[pid] = role

    return {
        "id": str(user["id"]),
        "email": email,
        "name": user.get("name"),
        "memberships": memberships,
        "is_admin": _is_admin_email(email),
    }


async def get_current_profile(current_user: dict = Depends(get_current_user)) -> dict:
    return load_profile(current_user)


def roles_for_publication(profile: dict, publication_id: Optional[str]) -> set[str]:
    """
    当前用户在某个 publication 下的角色集合（始终包含 writer）。
    """
    roles = {WRITER_ROLE}
    if profile.get("is_admin"):
        roles.add(ADMIN_ROLE)
    if publication_id:
        role = (profile.get("memberships") or {}).get(str(publication_id))
        if role:
            roles.add(role)
    return normalize_roles(roles)


def require_capability(profile: dict, action: str, *, publication_id: Optional[str] = None) -> set[str]:
    """
    逐个 mutation 做能力校验；失败抛 Unauthorized(403)。
    """
    roles = roles_for_publication(profile, publication_id)
    if not can_perform_action(action=action, roles=roles):
        raise Unauthorized("Insufficient role")
    return roles
