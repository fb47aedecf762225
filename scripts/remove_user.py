#!/usr/bin/env python3
"""Remove a SOS Ksar user by email.

Deletes the user together with their sessions, accounts and reports.

Usage:
    python scripts/remove_user.py alice@example.com
    python scripts/remove_user.py alice@example.com --yes
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


async def remove_user(email: str, assume_yes: bool) -> None:
    """Delete the user with the given email after confirmation."""
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

    print("=== SOS Ksar Remove User ===\n")

    try:
        await pg_client.connect()
        await redis_client.connect()
        user_service = UserService(
            UserRepository(pg_client),
            AccountRepository(pg_client),
            SessionCacheRepository(redis_client.get_client()),
        )
        user = await user_service.get_user_by_email(email)

        if not assume_yes:
            ans = input(
                f"Delete '{user.email}' ({user.role}) and all their reports? (y/N): "
            )
            if ans.strip().lower() != "y":
                print("Aborted.")
                return

        await user_service.delete_user(user.id)
        print(f"✓ User removed: {user.email}")
    except SosKsarException as e:
        print(f"✗ {e.message}")
        sys.exit(1)
    finally:
        await redis_client.disconnect()
        await pg_client.disconnect()


def main() -> None:
    parser = argparse.ArgumentParser(description="Remove a user by email")
    parser.add_argument("email", help="User email")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation")
    args = parser.parse_args()

    asyncio.run(remove_user(args.email, args.yes))


if __name__ == "__main__":
    main()
