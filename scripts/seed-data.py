#!/usr/bin/env python3
from __future__ import annotations

from argparse import ArgumentParser

from db.seed import seed_reference_data, seed_users
from db.session import create_db_engine, make_session_factory


def main() -> None:
    parser = ArgumentParser(description="Seed reference data and one demo login per role")
    parser.add_argument("--password", default="password123")
    parser.add_argument("--skip-users", action="store_true")
    args = parser.parse_args()

    engine = create_db_engine()
    session = make_session_factory(engine)()
    try:
        created = seed_reference_data(session)
        print(
            "[seed] countries={countries} languages={languages} genres={genres}".format(**created)
        )
        if not args.skip_users:
            emails = seed_users(session, password=args.password)
            if emails:
                print(f"[seed] users created: {', '.join(emails)}")
            else:
                print("[seed] users already exist, skipped")
    finally:
        session.close()
        engine.dispose()


if __name__ == "__main__":
    main()
