import logging
from typing import Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PWTimeout
from playwright.async_api import async_playwright

from errors import AuthError, ParseError
from grade_parser import filter_course_links
from grades import CourseLink, RawRow
from settings import Settings

# Configure logging
logger = logging.getLogger(__name__)

# Constants
USERNAME_SELECTOR = "#login"
PASSWORD_SELECTOR = "#password"
SUBMIT_SELECTOR = 'button[type="submit"]'
COURSE_MENU_LINKS = "#hierarchical-show a"
MIN_MENU_LINKS = 3
RESULTS_TABLE_SELECTOR = "li.uk-active table"
POLL_INTERVAL_MS = 1000
CHROMIUM_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

ANCHORS_SCRIPT = """
() => Array.from(document.querySelectorAll("#hierarchical-show a")).map((a) => {
    const nameSpan = Array.from(a.children).find((e) => e instanceof HTMLSpanElement);
    const session = a.querySelector("span.uk-text-small");
    const status = Array.from(a.querySelectorAll("span.md-color-blue-grey-600"))
        .find((e) => e.className === "md-color-blue-grey-600");
    return {
        href: a.href,
        name: nameSpan ? nameSpan.innerText.trim() : "",
        session: session ? session.innerText.trim() : "",
        status: status ? status.innerText.trim() : "",
    };
})
"""

ROWS_SCRIPT = """
() => {
    const tbody = document.querySelector("tbody");
    if (!tbody) {
        return null;
    }
    return Array.from(tbody.children).map((tr) => {
        const cells = Array.from(tr.children);
        const first = cells.length ? cells[0].firstElementChild : null;
        return {
            cssClass: tr.className,
            cells: cells.map((c) => c.innerText.trim()),
            label: first ? first.innerText.trim() : "",
        };
    });
}
"""

COUNT_AT_LEAST_SCRIPT = "([selector, count]) => document.querySelectorAll(selector).length >= count"


class ErpScraper:
    """One browser session against the ERP portal.

    Use as ``async with ErpScraper(settings) as scraper``; leaving the block
    closes every page, the context, the browser and the Playwright driver.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.playwright = None
        self.browser = None
        self.context = None
        self.page: Optional[Page] = None

    async def __aenter__(self):
        self.playwright = await async_playwright().start()
        try:
            browser_type = getattr(self.playwright, self.settings.browser)
            launch_args = CHROMIUM_ARGS if self.settings.browser == "chromium" else []
            self.browser = await browser_type.launch(headless=self.settings.headless, args=launch_args)
            self.context = await self.browser.new_context(
                viewport=self.settings.viewport,
                user_agent=self.settings.user_agent,
            )
            self.context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
            self.context.set_default_timeout(self.settings.navigation_timeout_ms)
        except BaseException:
            # __aexit__ is not called when __aenter__ raises
            await self.__aexit__(None, None, None)
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

    async def wait_for_count(self, page: Page, selector: str, count: int) -> None:
        """Poll once a second until ``selector`` matches ``count`` elements."""
        await page.wait_for_function(
            COUNT_AT_LEAST_SCRIPT,
            arg=[selector, count],
            polling=POLL_INTERVAL_MS,
            timeout=self.settings.navigation_timeout_ms,
        )

    async def login(self, username: str, password: str) -> None:
        logger.info(f"Navigating to {self.settings.login_url}...")
        try:
            self.page = await self.context.new_page()
            await self.page.goto(self.settings.login_url, wait_until="networkidle")

            await self.page.wait_for_selector(USERNAME_SELECTOR)
            await self.page.fill(USERNAME_SELECTOR, username)
            await self.page.wait_for_selector(PASSWORD_SELECTOR)
            await self.page.fill(PASSWORD_SELECTOR, password)
            await self.page.click(SUBMIT_SELECTOR)

            # The course menu only fills in once the session is live
            await self.wait_for_count(self.page, COURSE_MENU_LINKS, MIN_MENU_LINKS)
        except PWTimeout as exc:
            raise AuthError(f"Login did not reach the course menu: {exc}") from exc
        except PlaywrightError as exc:
            raise AuthError(f"Login failed: {exc}") from exc
        logger.info("Login successful (course menu loaded).")

    async def list_course_links(self, target_session: str) -> List[CourseLink]:
        if self.page is None:
            raise AuthError("list_course_links called before login")

        # The link list is lazy-loaded; scroll and let it settle before reading it
        await self.page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
        await self.page.wait_for_timeout(self.settings.settle_delay_ms)
        anchors: List[Dict[str, str]] = await self.page.evaluate(ANCHORS_SCRIPT)

        links = filter_course_links(anchors, self.settings.results_url_prefix, target_session)
        logger.info(f"Found {len(links)} course link(s) for {target_session} out of {len(anchors)} anchor(s).")
        return links

    async def open_course_page(self, link: CourseLink) -> Page:
        page = await self.context.new_page()
        try:
            await page.goto(link.url, wait_until="networkidle")
            await self.wait_for_count(page, RESULTS_TABLE_SELECTOR, 1)
        except PlaywrightError:
            await page.close()
            raise
        return page

    async def fetch_result_rows(self, link: CourseLink) -> List[RawRow]:
        logger.debug(f"Opening results for {link.name}: {link.url}")
        page = await self.open_course_page(link)
        try:
            raw = await page.evaluate(ROWS_SCRIPT)
        finally:
            await page.close()

        if raw is None:
            raise ParseError(f"No results table body on {link.url}")
        return [
            RawRow(css_class=row.get("cssClass") or "", cells=list(row.get("cells") or []), label=row.get("label") or "")
            for row in raw
        ]
