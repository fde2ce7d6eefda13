#!/usr/bin/env python3
from __future__ import annotations

from argparse import ArgumentParser

from db.seed import reset_password
from db.session import create_db_engine, make_session_factory


def main() -> None:
    parser = ArgumentParser(description="Reset the password of a login")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args()

    engine = create_db_engine()
    session = make_session_factory(engine)()
    try:
        if not reset_password(session, args.email, args.password):
            raise SystemExit(f"No login found for {args.email}")
        print(f"[reset-password] updated {args.email}")
    finally:
        session.close()
        engine.dispose()


if __name__ == "__main__":
    main()
