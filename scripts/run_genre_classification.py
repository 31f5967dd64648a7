from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from creatorcore.config import settings  # noqa: E402
from creatorcore.db.base import SessionLocal  # noqa: E402
from creatorcore.errors import RunAlreadyActiveError  # noqa: E402
from creatorcore.genre.search import build_default_resolver  # noqa: E402
from creatorcore.services.classification import ClassificationLimits, run_genre_classification  # noqa: E402


def main(limit: int, max_search_calls: int, use_search: bool) -> int:
    session = SessionLocal()
    try:
        summary = run_genre_classification(
            session,
            build_default_resolver() if use_search else None,
            limits=ClassificationLimits(
                batch_limit=limit,
                max_search_calls=max_search_calls,
                search_timeout_seconds=settings.GENRE_SEARCH_TIMEOUT_SECONDS,
            ),
        )
    except RunAlreadyActiveError as exc:
        print(f"Skipped: {exc}")
        return 1
    finally:
        session.close()
    print(f"Classification run {summary['id']} {summary['status']}: {summary}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Classify campaign genres for unclassified campaigns.")
    parser.add_argument("--limit", type=int, default=settings.GENRE_BATCH_LIMIT, help="Max campaigns per run.")
    parser.add_argument(
        "--max-search-calls",
        type=int,
        default=settings.GENRE_MAX_SEARCH_CALLS,
        help="Max external search calls per run.",
    )
    parser.add_argument("--no-search", action="store_true", help="Skip external search escalation.")
    args = parser.parse_args()
    sys.exit(main(limit=args.limit, max_search_calls=args.max_search_calls, use_search=not args.no_search))
