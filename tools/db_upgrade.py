#!/usr/bin/env python3
"""Apply Alembic migrations (to head unless a revision is given)."""

from __future__ import annotations

import argparse
from pathlib import Path

from alembic.config import Config

from alembic import command

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def alembic_config() -> Config:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return cfg


def upgrade(revision: str = "head", sql: bool = False) -> None:
    command.upgrade(alembic_config(), revision, sql=sql)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("revision", nargs="?", default="head")
    parser.add_argument(
        "--sql", action="store_true", help="print the SQL instead of running it"
    )
    args = parser.parse_args()
    upgrade(args.revision, sql=args.sql)


if __name__ == "__main__":
    main()
