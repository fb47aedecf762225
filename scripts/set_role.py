#!/usr/bin/env python3
"""Promote or demote a SOS Ksar user by email.

Open sessions pick up the new role once their cached payload expires.

Usage:
    python scripts/set_role.py alice@example.com volunteer
    python scripts/set_role.py bob@example.com admin
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


async def set_role(email: str, role: str) -> None:
    """Change the role of the user with the given email."""
    from sos_ksar.config.app_settings import AppSettings
    from sos_ksar.exception import SosKsarException
    from sos_ksar.infrastructure.persistence.postgresql.client import PostgreSQLClient
    from sos_ksar.infrastructure.persistence.redis.client import RedisClient
    from sos_ksar.repository.account_repository import AccountRepository
    from sos_ksar.repository.session_cache_repository import SessionCacheRepository
    from sos_ksar.repository.user_repository import UserRepository
    from sos_ksar.service.user_service import UserService

    settings = AppSettings()
    pg_client = PostgreSQLClient.from_settings(settings)
    redis_client = RedisClient.from_settings(settings)

    print("=== SOS Ksar Set Role ===\n")

    try:
        await pg_client.connect()
        await redis_client.connect()
        user_service = UserService(
            UserRepository(pg_client),
            AccountRepository(pg_client),
            SessionCacheRepository(redis_client.get_client()),
        )
        user = await user_service.get_user_by_email(email)
        previous = user.role
        await user_service.update_role(user.id, role)
        print(f"✓ {user.email}: {previous} → {role}")
    except SosKsarException as e:
        print(f"✗ {e.message}")
        sys.exit(1)
    finally:
        await redis_client.disconnect()
        await pg_client.disconnect()


def main() -> None:
    from sos_ksar.constants import UserRole

    parser = argparse.ArgumentParser(description="Change a user's role")
    parser.add_argument("email", help="User email")
    parser.add_argument(
        "role", choices=[role.value for role in UserRole], help="New role"
    )
    args = parser.parse_args()

    asyncio.run(set_role(args.email, args.role))


if __name__ == "__main__":
    main()
