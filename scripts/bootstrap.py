#!/usr/bin/env python3
"""Bootstrap SOS Ksar with an admin user.

Creates the schema if needed and an admin user with an email/password
credential, then prints the credentials.

Usage:
    python scripts/bootstrap.py
    python scripts/bootstrap.py --email alice@example.com --name Alice

Options:
    --email      Admin email      (default: admin@localhost)
    --name       Admin name       (default: Admin)
    --password   Admin password   (default: auto-generated)
    --force      Reset the password and role of an existing user without prompting
"""

import argparse
import asyncio
import secrets
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def _generate_password() -> str:
    """Generate a random 20-character URL-safe password."""
    return secrets.token_urlsafe(15)


def _box(lines: list[str], title: str = "") -> str:
    """Return a simple ASCII box around the given lines."""
    width = max(len(line) for line in lines + [title]) + 4
    border = "─" * width
    out = [f"╔{border}╗"]
    if title:
        pad = width - len(title) - 2
        out.append(f"║  {title}{' ' * pad}║")
        out.append(f"╠{border}╣")
    for line in lines:
        pad = width - len(line) - 2
        out.append(f"║  {line}{' ' * pad}║")
    out.append(f"╚{border}╝")
    return "\n".join(out)


async def _create_admin_user(
    *,
    user_service,
    email: str,
    name: str,
    password: str,
    force: bool,
    step_num: int,
) -> int:
    """Create (or promote) an admin user.

    Returns:
        Final user id
    """
    from sos_ksar.constants import UserRole
    from sos_ksar.exception import NotFoundError

    print(f"{step_num}. Creating admin user...")

    try:
        existing = await user_service.get_user_by_email(email)
    except NotFoundError:
        existing = None

    if existing is None:
        user = await user_service.create_user(
            email=email, name=name, role=UserRole.ADMIN.value, password=password
        )
        print(f"   ✓ Admin user created: {user.email}")
        return user.id

    if not force:
        ans = input(f"   User '{email}' already exists. Reset password? (Y/n): ")
        if ans.strip().lower() == "n":
            print("   Skipping user update.")
            return existing.id

    await user_service.set_password(existing.id, password)
    await user_service.update_role(existing.id, UserRole.ADMIN.value)
    print(f"   ✓ Existing user promoted to admin: {email}")
    return existing.id


async def bootstrap(email: str, name: str, password: str, force: bool) -> None:
    """Bootstrap a new SOS Ksar installation with an admin user."""
    from sos_ksar.config.app_settings import AppSettings
    from sos_ksar.infrastructure.persistence.postgresql.client import PostgreSQLClient
    from sos_ksar.infrastructure.persistence.postgresql.models import BaseModel
    from sos_ksar.repository.account_repository import AccountRepository
    from sos_ksar.repository.user_repository import UserRepository
    from sos_ksar.service.user_service import UserService

    settings = AppSettings()
    pg_client = PostgreSQLClient.from_settings(settings)

    print("=== SOS Ksar Bootstrap ===\n")
    db_host = settings.postgres_url.split("@")[-1]
    print(f"  Database : {db_host}")
    print(f"  Email    : {email}")
    print()

    try:
        print("1. Connecting to PostgreSQL...")
        await pg_client.connect()
        print("   ✓ Connected")

        print("2. Ensuring schema exists...")
        async with pg_client.engine.begin() as conn:
            await conn.run_sync(BaseModel.metadata.create_all)
        print("   ✓ Schema ready")

        user_service = UserService(
            UserRepository(pg_client), AccountRepository(pg_client)
        )
        user_id = await _create_admin_user(
            user_service=user_service,
            email=email,
            name=name,
            password=password,
            force=force,
            step_num=3,
        )

        print()
        print(
            _box(
                [
                    f"User ID   : {user_id}",
                    f"Email     : {email}",
                    "Role      : admin",
                    f"Password  : {password}",
                ],
                title="Credentials",
            )
        )
        print("Sign in with POST /api/auth/sign-in/email\n")

    except Exception as e:
        print(f"\n✗ Error: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
    finally:
        await pg_client.disconnect()


def main() -> None:
    """Entry point for the bootstrap CLI."""
    parser = argparse.ArgumentParser(
        description="Bootstrap SOS Ksar with an admin user"
    )
    parser.add_argument("--email", default="admin@localhost", help="Admin email")
    parser.add_argument("--name", default="Admin", help="Admin display name")
    parser.add_argument(
        "--password",
        default=None,
        help="Admin password (default: auto-generated)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Reset an existing user without prompting",
    )
    args = parser.parse_args()

    asyncio.run(
        bootstrap(
            email=args.email,
            name=args.name,
            password=args.password or _generate_password(),
            force=args.force,
        )
    )


if __name__ == "__main__":
    main()
