#!/usr/bin/env python3
from __future__ import annotations

from argparse import ArgumentParser

from db.seed import release_all_in_country
from db.session import create_db_engine, make_session_factory


def main() -> None:
    parser = ArgumentParser(description="Release every series in a country")
    parser.add_argument("--country-id", type=int, required=True)
    args = parser.parse_args()

    engine = create_db_engine()
    session = make_session_factory(engine)()
    try:
        try:
            released = release_all_in_country(session, args.country_id)
        except ValueError as exc:
            raise SystemExit(str(exc))
        for webseries_id in released:
            print(f"[release] series {webseries_id} -> country {args.country_id}")
        print(f"[release] {len(released)} series released")
    finally:
        session.close()
        engine.dispose()


if __name__ == "__main__":
    main()
