"""Portal attendance scraper using Playwright."""

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from src.logutils import get_logger

from .config import PortalConfig
from .parsers.extractor import ExtractedSubject, extract_attendance, parse_subject_details

logger = get_logger(__name__)

# (code, name, attended, conducted)
MOCK_SUBJECTS = (
    ("CS201", "Data Structures", 45, 50),
    ("CS202", "Database Management", 38, 48),
    ("CS203", "Operating Systems", 42, 52),
    ("CS204", "Computer Networks", 35, 50),
    ("CS205", "Software Engineering", 40, 45),
)


def mock_attendance_html() -> str:
    """Deterministic attendance page used when ``USE_MOCK_DATA=true``.

    Carries the attendance table and a subject details table, so both the
    extractor and ``parse_subject_details`` work on it.
    """
    attendance_rows = "\n".join(
        f"<tr><td>{serial}</td><td>{code}</td><td>{attended}</td><td>{conducted}</td>"
        f"<td>{attended / conducted * 100:.2f}</td></tr>"
        for serial, (code, _, attended, conducted) in enumerate(MOCK_SUBJECTS, start=1)
    )
    detail_rows = "\n".join(
        f"<tr><td>{code}</td><td>{name}</td></tr>" for code, name, _, _ in MOCK_SUBJECTS
    )
    return f"""<html>
<body>
<table id="attendance">
<tr><th>S.No</th><th>Subject Code</th><th>Classes Attended</th><th>Total Conducted</th><th>Attendance %</th></tr>
{attendance_rows}
</table>
<table id="subject-details">
<tr><th>Subject Code</th><th>Subject Name</th></tr>
{detail_rows}
</table>
</body>
</html>"""


async def extract_from_page(page: Page) -> list[ExtractedSubject]:
    """Run the extractor against any loaded Playwright page.

    Raises:
        ExtractionEmpty: no strategy found attendance on the page
    """
    html = await page.content()
    return extract_attendance(html)


class PortalScraper:
    """Playwright-based scraper for the college portal attendance page.

    The browser context is restored from ``config.storage_state``; the
    scraper only loads pages, it does not sign in.

    Example:
        async with PortalScraper(PortalConfig.from_env()) as scraper:
            html = await scraper.fetch_attendance_html()
    """

    def __init__(self, config: PortalConfig):
        self.config = config
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def __aenter__(self) -> "PortalScraper":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def start(self) -> None:
        """Start the browser. Does nothing in mock mode."""
        if self.config.use_mock_data:
            logger.info("Mock mode enabled, browser not started")
            return

        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(
            headless=self.config.headless
        )
        self.context = await self.browser.new_context(
            viewport={"width": 1280, "height": 720},
            storage_state=self.config.storage_state,
        )
        self.page = await self.context.new_page()
        self.page.set_default_timeout(self.config.timeout)

    async def close(self) -> None:
        """Close the browser."""
        if self.browser:
            await self.browser.close()
            self.browser = None
        if hasattr(self, "_playwright"):
            await self._playwright.stop()
            del self._playwright
        self.page = None
        self.context = None

    async def load_page(self, url: str) -> str:
        """Navigate to ``url`` and return the rendered HTML."""
        if not self.page:
            raise RuntimeError("Browser not started. Call start() first.")

        logger.debug(f"Loading {url}", extra={"extra_data": {"url": url}})
        await self.page.goto(url)
        await self.page.wait_for_load_state("networkidle")
        return await self.page.content()

    async def fetch_attendance_html(self) -> str:
        """HTML of the attendance page (or the mock page)."""
        if self.config.use_mock_data:
            return mock_attendance_html()

        try:
            return await self.load_page(self.config.attendance_url)
        except PlaywrightError as e:
            logger.error(
                f"Failed to load attendance page: {e}",
                extra={"extra_data": {"url": self.config.attendance_url}},
            )
            if self.config.debug and self.page:
                await self.page.screenshot(path="attendance_error.png")
            raise

    async def fetch_subject_names(self) -> dict[str, str]:
        """Code to name mappings from the subject details page.

        Returns an empty mapping when no details page is configured or it
        cannot be loaded; callers fall back to the built-in name table.
        """
        if self.config.use_mock_data:
            return parse_subject_details(mock_attendance_html())
        if not self.config.subject_details_page:
            return {}

        url = self.config.get_page_url(self.config.subject_details_page)
        try:
            html = await self.load_page(url)
        except PlaywrightError as e:
            logger.warning(
                f"Could not load subject details: {e}",
                extra={"extra_data": {"url": url}},
            )
            return {}
        return parse_subject_details(html)

    async def scrape_attendance(self) -> list[ExtractedSubject]:
        """Load the attendance page and run the extractor on it.

        Raises:
            ExtractionEmpty: no strategy found attendance on the page
        """
        html = await self.fetch_attendance_html()
        return extract_attendance(html)
