import logging
import os
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.errors import Unauthenticated
from app.lib.api_client import supabase

logger = logging.getLogger("submeet.auth")

# === Auth 核心配置 ===
# 中文注释:
# 1. 密钥来源于 Supabase Project Settings 中的 JWT Secret；没有默认值，未配置时 HS256 token 一律交给 Supabase Auth API 校验。
# 2. 我们使用 HTTPBearer 作为验证头；缺少 header 时统一返回 401，而不是框架默认的 403。
SUPABASE_JWT_SECRET = os.environ.get("SUPABASE_JWT_SECRET") or ""
ALGORITHM = "HS256"

security = HTTPBearer(auto_error=False)


def _identity_from_payload(payload: dict) -> dict:
    user_id = payload.get("sub")
    email = (payload.get("email") or "").strip().lower()
    if user_id is None or not email:
        raise Unauthenticated("Invalid identity payload")
    return {"id": user_id, "email": email}


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    解码并验证 Supabase JWT Token
    返回 {"id": <auth uid>, "email": <小写 email>}

    中文注释:
    - 业务数据以 email 关联到 `users` 表，这里必须保证 email 存在。
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    token = credentials.credentials
    try:
        # 中文注释:
        # 1. Supabase 新版可能使用 JWT Signing Keys（非 HS256），需要走 Auth API 获取用户。
        # 2. 若仍为 HS256，则用本地密钥校验以减少外部请求。
        header = jwt.get_unverified_header(token)
        if header.get("alg") == ALGORITHM:
            if not SUPABASE_JWT_SECRET:
                logger.warning("SUPABASE_JWT_SECRET is not set; skipping local HS256 verification")
            else:
                payload = jwt.decode(token, SUPABASE_JWT_SECRET, algorithms=[ALGORITHM], audience="authenticated")
                return _identity_from_payload(payload)
    except JWTError as e:
        logger.info("JWT verification failed: %s", e)
        raise Unauthenticated("Token invalid or expired")

    # fallback: 通过 Supabase Auth API 校验并获取用户信息
    try:
        response = supabase.auth.get_user(token)
        user = response.user if response else None
    except Exception as e:
        # 中文注释: 若 Supabase 配置缺失/网络异常，不应返回 500 泄露内部错误，统一视为鉴权失败
        logger.warning("Supabase auth fallback failed: %s", e)
        raise Unauthenticated("Token invalid or expired")

    if not user:
        raise Unauthenticated("Invalid identity payload")
    return _identity_from_payload({"sub": user.id, "email": user.email})
