# herbal_ledger/db/init_db.py
from __future__ import annotations

import argparse

from sqlalchemy import inspect

from herbal_ledger.db.base import Base
from herbal_ledger.db.session import engine


def print_tables(bind):
    names = inspect(bind).get_table_names()
    print("Existing tables:", names)
    return set(names)


def run(fresh: bool = False) -> None:
    if fresh:
        print("WARNING: Dropping ALL ledger tables …")
        Base.metadata.drop_all(bind=engine)

    print("Creating all missing tables …")
    Base.metadata.create_all(bind=engine)
    print_tables(engine)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Initialize the ledger database (create tables).")
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Drop & recreate all tables (wipes every record).",
    )
    args = parser.parse_args()
    run(fresh=args.fresh)
