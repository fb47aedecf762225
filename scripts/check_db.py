#!/usr/bin/env python3
"""Check that SOS Ksar can reach PostgreSQL and Redis.

Usage:
    python scripts/check_db.py
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


async def check() -> bool:
    """Run the same health checks as GET /health.

    Returns:
        True when both stores answer
    """
    from sos_ksar.config.app_settings import AppSettings
    from sos_ksar.infrastructure.persistence.postgresql.client import PostgreSQLClient
    from sos_ksar.infrastructure.persistence.redis.client import RedisClient

    settings = AppSettings()
    ok = True

    print("=== SOS Ksar Connection Check ===\n")

    pg_client = PostgreSQLClient.from_settings(settings)
    print(f"PostgreSQL ({settings.postgres_url.split('@')[-1]})...")
    try:
        await pg_client.connect()
        await pg_client.health_check()
        print("   ✓ Connected")
    except Exception as e:
        print(f"   ✗ {e}")
        ok = False
    finally:
        await pg_client.disconnect()

    redis_client = RedisClient.from_settings(settings)
    print(f"Redis ({settings.redis_url.split('@')[-1]})...")
    try:
        await redis_client.connect()
        await redis_client.health_check()
        print("   ✓ Connected")
    except Exception as e:
        print(f"   ✗ {e}")
        ok = False
    finally:
        await redis_client.disconnect()

    return ok


def main() -> None:
    if not asyncio.run(check()):
        sys.exit(1)


if __name__ == "__main__":
    main()
