import glob
import os
import sys

import psycopg2
from dotenv import load_dotenv

# 中文注释: 连接串只从环境变量读取（DATABASE_URL / SUPABASE_DB_URL），不在仓库里保存任何凭据。
MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "backend", "migrations")


def _db_url() -> str:
    for key in ("DATABASE_URL", "SUPABASE_DB_URL"):
        raw = (os.environ.get(key) or "").strip()
        if raw:
            return raw
    return ""


def run_migrations() -> int:
    load_dotenv()
    db_url = _db_url()
    if not db_url:
        print("❌ DATABASE_URL (or SUPABASE_DB_URL) is not set")
        return 1

    files = sorted(glob.glob(os.path.join(MIGRATIONS_DIR, "*.sql")))
    if not files:
        print(f"⚠️ No migrations found in {MIGRATIONS_DIR}")
        return 0

    print("🚀 Connecting to database...")
    conn = psycopg2.connect(db_url)
    try:
        conn.autocommit = True
        with conn.cursor() as cur:
            for path in files:
                print(f"📄 Applying {os.path.basename(path)}...")
                with open(path, "r", encoding="utf-8") as f:
                    cur.execute(f.read())
    finally:
        conn.close()

    print("✅ Database migration completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(run_migrations())
