"""Load a JSON results export into the ground truth database."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from houndcast.config import load_settings
from houndcast.ground_truth import DBM, InMemoryGroundTruthRepository, record_to_row
from houndcast.shared.errors import ConfigError, RepositoryError
from houndcast.shared.logging import setup_logging_from_settings

logger = logging.getLogger("houndcast.entrypoints.load_results")


async def load(path: str, dbm: DBM) -> int:
    source = InMemoryGroundTruthRepository.from_json(path)
    await dbm.create_schema()
    return await dbm.insert_results(record_to_row(r) for r in source.records)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Import a results export into dog_race_info")
    parser.add_argument("path", help="JSON array of result rows")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--database-url", help="Override database.url")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(f"houndcast-load-results: {exc}", file=sys.stderr)
        return 2
    setup_logging_from_settings(settings.logging)

    async def _run() -> int:
        dbm = DBM(settings.database, url=args.database_url)
        try:
            return await load(args.path, dbm)
        finally:
            await dbm.dispose()

    try:
        inserted = asyncio.run(_run())
    except RepositoryError as exc:
        print(f"houndcast-load-results: {exc}", file=sys.stderr)
        return 2
    logger.info({"event": "results_loaded", "rows": inserted, "path": args.path})
    return 0


if __name__ == "__main__":
    sys.exit(main())
