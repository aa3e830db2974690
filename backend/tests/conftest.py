import os
import sys
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# 后端没有默认 JWT secret，必须在导入 app 之前设置
os.environ.setdefault("SUPABASE_JWT_SECRET", "submeet-test-jwt-secret")

from app.core.auth_utils import ALGORITHM, SUPABASE_JWT_SECRET
from app.lib import api_client
from main import app
from tests.utils.fake_supabase import FakeSupabase

# === 全局测试配置 ===
# 中文注释:
# 1. 显式使用 pytest_asyncio.fixture 解决 STRICT 模式下的生成器问题。
# 2. 所有测试默认跑在内存版 Supabase 上（fake_db），不依赖真实数据库 / Storage。
# 3. JWT 令牌用与后端相同的 HS256 secret 签名。


@pytest_asyncio.fixture
async def client() -> AsyncGenerator:
    """
    提供一个模拟的异步测试客户端
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    """
    把 service_role client 换成内存实现；各 Service 通过 supabase_admin 代理访问它。
    """
    db = FakeSupabase()
    monkeypatch.setattr(api_client.supabase_admin, "_client", db)
    monkeypatch.setattr(api_client.supabase, "_client", db)
    return db


def generate_test_token(
    user_id: str = "00000000-0000-0000-0000-000000000000",
    email: str = "test@example.com",
    *,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "exp": now + expires_in,
        "iat": now,
        "role": "authenticated",
    }
    return jwt.encode(payload, SUPABASE_JWT_SECRET, algorithm=ALGORITHM)


@pytest.fixture
def auth_token() -> str:
    return generate_test_token()


@pytest.fixture
def expired_token() -> str:
    return generate_test_token(expires_in=timedelta(hours=-1))


@pytest.fixture
def make_user(fake_db):
    """
    在 users 表中创建用户并返回 (profile 行, token)。
    `memberships={publication_id: role}` 会写入 publication_members。
    """

    def _make(name: str = "Writer", *, email: str | None = None, memberships: dict | None = None):
        user_id = str(uuid4())
        email = email or f"{name.lower().replace(' ', '.')}.{user_id[:8]}@example.com"
        row = fake_db.add("users", id=user_id, email=email, name=name)
        for publication_id, role in (memberships or {}).items():
            fake_db.add(
                "publication_members",
                publication_id=publication_id,
                user_id=user_id,
                role=role,
                current_workload=0,
                max_workload=None,
            )
        return row, generate_test_token(user_id, email)

    return _make


@pytest.fixture
def publication(fake_db) -> dict:
    org = fake_db.add("organizations", name="Small Press Collective")
    return fake_db.add("publications", organization_id=org["id"], name="The Quarterly Review")


@pytest.fixture
def make_form(fake_db, publication):
    def _make(**overrides) -> dict:
        row = {
            "publication_id": publication["id"],
            "name": "General Submissions",
            "fields": [],
            "is_active": True,
            "reading_period_start": None,
            "reading_period_end": None,
            "submission_cap": None,
            "current_submission_count": 0,
        }
        row.update(overrides)
        return fake_db.add("forms", **row)

    return _make


@pytest.fixture
def open_form(make_form) -> dict:
    return make_form()
