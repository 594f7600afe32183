import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from aggregator import build_course_snapshot
from erp_scraper import ErpScraper
from errors import ConfigError
from grade_parser import extract_anchors_from_html, extract_rows_from_html, filter_course_links, parse_rows
from grades import CourseLink, snapshot_to_dicts
from settings import RESULTS_URL_PREFIX, TARGET_SESSION, load_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger("VerifyModule")
logging.getLogger("erp_scraper").setLevel(logging.DEBUG)

load_dotenv()


def save_results(snapshot, path="scraped_results.json"):
    # Save to JSON for inspection
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot_to_dicts(snapshot), f, ensure_ascii=False, indent=4)
    logger.info(f"Saved scraped results to '{path}'")

    if snapshot:
        logger.info(f"TEST PASSED: {len(snapshot)} courses extracted.")
    else:
        logger.error("TEST FAILED: No courses found.")


async def run_test(settings):
    logger.info("Testing ErpScraper module...")
    async with ErpScraper(settings) as scraper:
        await scraper.login(settings.username, settings.password)
        links = await scraper.list_course_links(settings.target_session)
        logger.info(f"Found {len(links)} course links.")

        snapshot = []
        for link in links:
            rows = await scraper.fetch_result_rows(link)
            logger.info(f"{link.name}: {len(rows)} rows")
            snapshot.append(build_course_snapshot(link, parse_rows(rows)))

    save_results(snapshot)


def run_offline(landing: Path, results: list, session: str):
    """Parse pages saved from the browser instead of logging in."""
    if landing:
        anchors = extract_anchors_from_html(landing.read_text(encoding="utf-8"))
        links = filter_course_links(anchors, RESULTS_URL_PREFIX, session)
        logger.info(f"{landing}: {len(links)} course link(s) for {session} out of {len(anchors)} anchor(s).")
        for link in links:
            logger.info(f"  {link.name} submitted={link.submitted} {link.url}")

    snapshot = []
    for path in results:
        rows = extract_rows_from_html(path.read_text(encoding="utf-8"))
        logger.info(f"{path}: {len(rows)} rows")
        link = CourseLink(url=path.as_uri(), name=path.stem, submitted=False)
        snapshot.append(build_course_snapshot(link, parse_rows(rows)))

    if results:
        save_results(snapshot)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Scrape the ERP portal once and save the parsed results, or parse saved pages offline."
    )
    parser.add_argument("--landing-html", type=Path, help="Saved landing page to read course links from.")
    parser.add_argument("--results-html", type=Path, nargs="*", default=[], help="Saved course results page(s).")
    parser.add_argument("--session", default=TARGET_SESSION, help=f"Session label (default: {TARGET_SESSION}).")
    args = parser.parse_args()

    if args.landing_html or args.results_html:
        run_offline(args.landing_html, args.results_html, args.session)
        sys.exit(0)

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error(f"Missing credentials: {exc}")
        sys.exit(1)
    asyncio.run(run_test(settings))
