"""
Script to mint a bearer token for local testing.

Optionally creates the tables first so a fresh SQLite/Postgres database is
usable without running migrations.
"""

import argparse
import asyncio
import os
import sys
import uuid
from datetime import timedelta

# Add the project root to sys.path to allow importing from 'app'
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from app.core.auth import create_jwt
from app.core.database import init_db


def main() -> None:
    parser = argparse.ArgumentParser(description="Mint a development JWT for a project owner.")
    parser.add_argument("--user-id", type=uuid.UUID, default=None, help="Owner id (random if omitted)")
    parser.add_argument("--minutes", type=int, default=24 * 60, help="Token lifetime in minutes")
    parser.add_argument("--init-db", action="store_true", help="Create tables before minting")
    args = parser.parse_args()

    if args.init_db:
        asyncio.run(init_db())
        print("Tables created.")

    user_id = args.user_id or uuid.uuid4()
    token, jti = create_jwt(user_id, expires_delta=timedelta(minutes=args.minutes))

    print("--- DEV TOKEN ---")
    print(f"USER ID: {user_id}")
    print(f"JTI: {jti}")
    print(f"Authorization: Bearer {token}")
    print("-----------------")


if __name__ == "__main__":
    main()
