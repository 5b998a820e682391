"""CLI script to create an admin account in the configured database.
Usage: python scripts/create_admin.py USERNAME [--password PASSWORD]
"""
import argparse
import getpass
from typing import Optional

from sqlmodel import Session

from portfolio_api import services
from portfolio_api.config import Settings
from portfolio_api.database import build_engine, create_db_and_tables
from portfolio_api.repositories import AdminUserRepository


def main(username: str, password: Optional[str] = None):
    """Create `username` unless it already exists.

    Tables are created first so the script works against a fresh database.
    """
    settings = Settings()
    engine = build_engine(settings.DATABASE_URL)
    create_db_and_tables(engine)
    with Session(engine) as session:
        if AdminUserRepository(session).get_by_username(username):
            print(f'Admin {username} already exists')
            return
        password = password or getpass.getpass('Password: ')
        if not password:
            print('A password is required')
            return
        user = services.AuthService(session, settings).register(username, password)
        print(f'Created admin {user.username} (id {user.id}) in {settings.DATABASE_URL}')
    engine.dispose()


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('username')
    parser.add_argument('--password', help='Prompted for when omitted')
    args = parser.parse_args()
    main(args.username, password=args.password)
