import argparse
import logging

from gym_backend.app.config import Settings
from gym_backend.db import Database
from gym_backend.services import Services


def main(argv=None, database=None):
    parser = argparse.ArgumentParser(description="Complete every active contract whose end date has passed.")
    parser.add_argument("--dry-run", action="store_true", help="only list the expired contracts")
    parser.add_argument("--env-file", default=None)
    args = parser.parse_args(argv)

    settings = Settings.from_env(args.env_file)
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    db = database or Database(settings.database_url)
    try:
        services = Services(db)
        if args.dry_run:
            expired = services.contracts.list_expired()
            for c in expired:
                print(f"{c['id']} client={c['client_id']} plan={c['plan_id']} ended {c['end_date']:%Y-%m-%d}")
            print(f"{len(expired)} expired contract(s) would be completed.")
            return len(expired)
        done = services.contracts.complete_expired()
        print(f"Completed {len(done)} expired contract(s).")
        return len(done)
    finally:
        if database is None:
            db.dispose()


if __name__ == "__main__":
    main()
