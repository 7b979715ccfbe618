"""
Acceptance checks for the directory client against a running backend.

Covers: profiles listing through the request state table, keyword search and
highlighting on live data, hero image stability across a reload of the same profiles,
and pagination bounds.

Run from repo root (backend reachable at BODYVANTAGE_API_BASE_URL):
  python scripts/search_acceptance.py "fat loss guildford"
"""
import asyncio
import logging
import sys

from bodyvantage.core import get_settings
from bodyvantage.domain import Operation
from bodyvantage.services import get_directory_service

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)


async def run_acceptance(query: str) -> None:
    service = get_directory_service()
    passed = 0
    failed = 0
    skipped = 0

    # 1) Listing lands in succeeded with a payload
    state = await service.load_profiles()
    if state.succeeded:
        logger.info("PASS: profiles listing: %s profiles on page %s/%s",
                    len(service.profiles()), service.pagination.state.page, service.pagination.state.total_pages)
        passed += 1
    else:
        logger.warning("FAIL: profiles listing: status=%s error=%s", state.status, state.error)
        sys.exit(1)

    # 2) Empty query yields nothing; the real query yields a subset
    if service.search("   ") == []:
        logger.info("PASS: empty query matches nothing")
        passed += 1
    else:
        logger.warning("FAIL: empty query returned results")
        failed += 1

    results = service.search_results(query)
    if not results.cards:
        logger.warning("SKIP: query %r matched nothing on this page", query)
        skipped += 1
    else:
        names = ["".join(r.text for r in c.name_runs) for c in results.cards]
        logger.info("PASS: query %r: %s", query, service.search_engine.match_summary(query, service.profiles()))
        logger.info("  top matches: %s", names[:5])
        passed += 1

    # 3) Hero image stays the same when the same profiles are fetched again
    first = await service.hero_image()
    await service.load_profiles(page=service.pagination.state.page)
    second = await service.hero_image()
    if first is None:
        logger.warning("SKIP: no reachable hero image (broken=%s)", len(service.image_selector.broken))
        skipped += 1
    elif first == second:
        logger.info("PASS: hero image stable across reload: %s", first)
        passed += 1
    else:
        logger.warning("FAIL: hero image changed across reload (%s -> %s)", first, second)
        failed += 1

    # 4) Out-of-bounds page change is a no-op
    before = service.pagination.state.page
    moved = await service.change_page(service.pagination.state.total_pages + 1)
    if moved is None and service.pagination.state.page == before:
        logger.info("PASS: out-of-bounds page change ignored")
        passed += 1
    else:
        logger.warning("FAIL: out-of-bounds page change moved to %s", moved)
        failed += 1

    logger.info("Final state of %s: %s", Operation.PROFILES.value, service.state(Operation.PROFILES).status)
    logger.info("--- Acceptance: %s passed, %s failed, %s skipped ---", passed, failed, skipped)
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(run_acceptance(sys.argv[1] if len(sys.argv) > 1 else "personal trainer"))
