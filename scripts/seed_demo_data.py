"""
Seed a FreightWise Postgres database with the demo accounts and sample data.

Inputs:
- --dsn or DATABASE_URL: Postgres URI; the schema from backend/sql/schema.sql
  must already be applied.
- --password or FREIGHTWISE_DEMO_PASSWORD: shared password for the demo users.

Behavior:
- Creates the demo admin and agents unless their email already exists.
- With --with-freight, also inserts the sample prices and announcements.
- Safe to re-run for users; freight rows are appended on every run.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from backend.freight.repo import InMemoryFreightRepo  # noqa: E402
from backend.freight.repo_db import DBFreightRepo  # noqa: E402
from backend.identity_access.stores_db import DBUserStore  # noqa: E402
from backend.identity_access.users import create_user  # noqa: E402

DEMO_USERS = (
    ("admin@freightwise.com", "Admin Freight", "admin"),
    ("agent1@freightwise.com", "Alice Agent", "agent"),
    ("agent2@freightwise.com", "Bob Broker", "agent"),
)


def seed_users(store: DBUserStore, password: str) -> int:
    created = 0
    for email, name, role in DEMO_USERS:
        if store.get_by_email(email) is not None:
            print(f"skip {email} (exists)")
            continue
        create_user(store, {"email": email, "name": name, "password": password, "role": role})
        created += 1
    return created


def seed_freight(repo: DBFreightRepo) -> int:
    sample = InMemoryFreightRepo()
    for price in sample.list_all_prices():
        repo.create_price(price.to_dict())
    for ann in sample.list_announcements():
        repo.create_announcement(title=ann.title, content=ann.content, author_id=ann.author_id, author_name=ann.author_name)
    return len(sample.prices)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed FreightWise demo users and sample freight data.")
    parser.add_argument("--dsn", default=os.getenv("DATABASE_URL"), help="Postgres DSN (default: DATABASE_URL)")
    parser.add_argument("--password", default=os.getenv("FREIGHTWISE_DEMO_PASSWORD"), help="Demo user password")
    parser.add_argument("--with-freight", action="store_true", help="Also insert sample prices and announcements")
    args = parser.parse_args()

    if not args.dsn:
        raise SystemExit("Missing DSN: pass --dsn or set DATABASE_URL")
    if not args.password or len(args.password) < 6:
        raise SystemExit("Missing demo password (min 6 chars): pass --password or set FREIGHTWISE_DEMO_PASSWORD")

    users = seed_users(DBUserStore(args.dsn), args.password)
    print(f"users created: {users}")
    if args.with_freight:
        prices = seed_freight(DBFreightRepo(args.dsn))
        print(f"prices created: {prices}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
