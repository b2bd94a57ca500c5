"""Management CLI.

Usage:
    python -m onboarding.cli create-tables             # Create missing tables (dev only; use Alembic in prod)
    python -m onboarding.cli issue-token <id> [role]   # Print a reviewer access token
    python -m onboarding.cli stats                     # Application counts per status
"""

import asyncio
import sys
from datetime import timedelta

from onboarding.auth.jwt import create_access_token
from onboarding.auth.permissions import ROLE_DEFAULTS, resolve_permissions
from onboarding.database import create_all, engine
from onboarding.logging_config import configure_logging
from onboarding.services.store import ApplicationStore


async def _create_tables():
    await create_all()
    await engine.dispose()


async def _stats() -> dict[str, int]:
    counts = await ApplicationStore().count_by_status()
    await engine.dispose()
    return counts


def create_tables():
    asyncio.run(_create_tables())
    print("Tables created.")


def issue_token(reviewer_id: str, role: str = "reviewer"):
    if role not in ROLE_DEFAULTS:
        print(f"Unknown role '{role}'. Choose from: {', '.join(sorted(ROLE_DEFAULTS))}")
        sys.exit(1)
    token = create_access_token(
        reviewer_id,
        role,
        resolve_permissions(role),
        expires_delta=timedelta(hours=8),
    )
    print(token)


def stats():
    counts = asyncio.run(_stats())
    for status, count in counts.items():
        print(f"  {status:<14}{count}")
    print(f"\n{sum(counts.values())} application(s)")


if __name__ == "__main__":
    configure_logging()
    args = sys.argv[1:]
    cmd = args[0] if args else ""
    if cmd == "create-tables":
        create_tables()
    elif cmd == "issue-token" and len(args) >= 2:
        issue_token(*args[1:3])
    elif cmd == "stats":
        stats()
    else:
        print("Usage: python -m onboarding.cli [create-tables|issue-token <id> [role]|stats]")
        sys.exit(1)
