"""Load the bundled four-stage, A-Z rubric into the configured database."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from badminton_alphabet.config import get_settings
from badminton_alphabet.db.session import Database
from badminton_alphabet.rubric import load_rubric, seed_rubric

LOGGER = logging.getLogger("alphabet.seed")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed stages, skills and stage-skill links.")
    parser.add_argument("--rubric", type=Path, default=None, help="Alternate rubric JSON file.")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables first (local SQLite setups without Alembic).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    database = Database(get_settings())
    try:
        if args.create_schema:
            database.create_schema()
        definition = load_rubric(args.rubric)
        with database.session_scope() as session:
            report = seed_rubric(session, definition)
        print(
            json.dumps(
                {
                    "stages_created": report.stages_created,
                    "skills_created": report.skills_created,
                    "links_created": report.links_created,
                }
            )
        )
        return 0
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Seeding failed: %s", exc)
        return 1
    finally:
        database.dispose()


if __name__ == "__main__":
    sys.exit(main())
