from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional, Sequence

from dotenv import load_dotenv
from playwright.async_api import Error as PlaywrightError

from aggregator import build_course_snapshot
from change_detector import Decision, merge_reference, should_notify
from erp_scraper import ErpScraper
from errors import ConfigError, DeliveryError, EmptySnapshotError, GradeNotifierError
from grade_parser import RowClassifier, parse_rows
from grades import CourseLink, CourseSnapshot, RunSnapshot, snapshot_to_dicts
from notifier import build_heartbeat, build_report, send
from settings import Settings, load_settings
from state_store import GcsStateStore, JsonFileStateStore, RunState, StateStore, load_baseline

logger = logging.getLogger("grade_notifier")


async def scrape_course(
    navigator,
    link: CourseLink,
    classifier: Optional[RowClassifier] = None,
) -> Optional[CourseSnapshot]:
    """Scrape one course. Any failure is logged and yields None."""
    try:
        rows = await navigator.fetch_result_rows(link)
        assessments = parse_rows(rows, classifier)
    except Exception as exc:
        logger.warning(f"Failed on {link.url} ({link.name}): {exc}")
        return None
    return build_course_snapshot(link, assessments)


async def collect_snapshot(
    navigator,
    links: Sequence[CourseLink],
    classifier: Optional[RowClassifier] = None,
) -> RunSnapshot:
    """Scrape every course concurrently; results keep the order of ``links``."""
    results = await asyncio.gather(*(scrape_course(navigator, link, classifier) for link in links))
    return list(results)


async def scrape_once(settings: Settings) -> RunSnapshot:
    async with ErpScraper(settings) as scraper:
        await scraper.login(settings.username, settings.password)
        links = await scraper.list_course_links(settings.target_session)
        logger.info("Collecting links done.")
        return await collect_snapshot(scraper, links)


def make_state_store(settings: Settings) -> StateStore:
    if settings.gcs_bucket_name:
        return GcsStateStore(settings.gcs_bucket_name, settings.state_blob_name)
    return JsonFileStateStore(settings.state_file)


def dump_json(payload) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


async def run(
    settings: Settings,
    store: StateStore,
    *,
    dry_run: bool = False,
    print_snapshot: bool = False,
) -> Decision:
    state = store.load()
    reference: Optional[RunSnapshot] = state.snapshot
    if settings.baseline_path is not None:
        logger.info(f"Using baseline snapshot from {settings.baseline_path}.")
        try:
            reference = load_baseline(settings.baseline_path)
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Cannot read baseline {settings.baseline_path}: {exc}") from exc

    attempt = 0
    while True:
        attempt += 1
        logger.info(f"--- Scrape attempt {attempt}/{settings.max_attempts} ---")
        snapshot = await scrape_once(settings)
        decision = should_notify(snapshot, reference, state.digest)
        if not decision.empty:
            break
        if attempt >= settings.max_attempts:
            raise EmptySnapshotError(attempt)
        delay = settings.retry_backoff_seconds * 2 ** (attempt - 1)
        logger.warning(f"Scrape returned no courses; restarting in {delay:g}s.")
        await asyncio.sleep(delay)

    if print_snapshot:
        print(dump_json(snapshot_to_dicts(snapshot)))

    if not decision.notify:
        logger.info(f"No changes detected ({decision.reason}).")
        payload = build_heartbeat()
        if dry_run:
            print(dump_json(payload))
            return decision
        try:
            send(settings.webhook_url, payload)
        except DeliveryError as exc:
            logger.warning(f"Heartbeat delivery failed: {exc}")
        return decision

    logger.info(f"Reporting {len(decision.payload)} course(s) ({decision.reason}).")
    payload = build_report(decision.payload)
    if dry_run:
        print(dump_json(payload))
        return decision
    try:
        send(settings.webhook_url, payload)
    except DeliveryError as exc:
        logger.warning(f"Report delivery failed, state left unchanged: {exc}")
        return decision

    try:
        store.save(RunState(digest=decision.digest, snapshot=merge_reference(snapshot, reference)))
    except Exception as exc:
        logger.warning(f"Error saving state, next run will report again: {exc}")
    return decision


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Logs into the ERP portal, scrapes course results for the target session, "
            "and posts changes to the configured webhook."
        )
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the webhook payload instead of sending it; state is not saved.",
    )
    parser.add_argument(
        "--print-snapshot",
        action="store_true",
        help="Print the scraped run snapshot as JSON.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)
    load_dotenv()

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error(f"Configuration error: {exc}")
        return 2

    try:
        asyncio.run(
            run(
                settings,
                make_state_store(settings),
                dry_run=args.dry_run,
                print_snapshot=args.print_snapshot,
            )
        )
    except ConfigError as exc:
        logger.error(f"Configuration error: {exc}")
        return 2
    except (GradeNotifierError, PlaywrightError) as exc:
        logger.error(f"Run failed: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
