from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, date, datetime
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from grantscraper.config import IngestSettings
from grantscraper.errors import CorpusUnavailableError
from grantscraper.io.corpus import ParquetCorpusGateway
from grantscraper.pipeline import retire_outdated

logger = logging.getLogger("retire_outdated")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Retire live scholarships whose deadline has passed.")
    parser.add_argument("--corpus-path", type=Path, default=None)
    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Reference date in YYYYMMDD format. Defaults to today in the configured timezone.",
    )
    return parser.parse_args(argv)


def run(*, corpus_path: Path, today: date) -> int:
    if not corpus_path.is_absolute():
        corpus_path = ROOT_DIR / corpus_path
    return retire_outdated(ParquetCorpusGateway(corpus_path), today=today, now=datetime.now(tz=UTC))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = IngestSettings.from_env().with_overrides(corpus_path=args.corpus_path)
    today = datetime.strptime(args.date, "%Y%m%d").date() if args.date else settings.today()

    try:
        retired = run(corpus_path=settings.corpus_path, today=today)
    except CorpusUnavailableError:
        logger.exception("Corpus unavailable; nothing was retired.")
        return 1

    print(f"Retired {retired} outdated scholarships as of {today.isoformat()}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
