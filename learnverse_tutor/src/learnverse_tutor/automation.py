"""
Browser Automation Service

Runs exam-paper and resource-search tasks against a browser session. The only
session available is MockBrowserSession, which logs each step and finds
nothing, so every handler finishes with fabricated results flagged `mock: True`.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from learnverse_tutor.errors import TaskError
from learnverse_tutor.task_parser import EXAM_PAPERS, SEARCH_RESOURCES, TaskParams

logger = logging.getLogger(__name__)

SEARCH_ENGINE_URL = "https://www.google.com"

SEARCH_INPUT_SELECTORS = [
    'input[type="search"]',
    'input[placeholder*="search" i]',
    'input[name*="search" i]',
    ".search-input",
    "#search",
]
SUBMIT_SELECTORS = [
    'button[type="submit"]',
    'input[type="submit"]',
    ".search-button",
]
DOWNLOAD_SELECTORS = [
    'a[href*=".pdf" i]',
    'a[href*="download" i]',
    ".download-link",
    "a[download]",
]
MAX_DOWNLOADS = 5


class MockBrowserSession:
    """Browser session stand-in: every call is logged and finds nothing."""

    def __init__(self):
        self.visited: List[str] = []
        self.closed = False

    async def open(self, url: str) -> None:
        logger.info(f"🌐 [MockBrowser] Opening {url}")
        self.visited.append(url)

    async def wait_for_selector(self, selector: str, timeout: int = 10000) -> None:
        logger.debug(f"[MockBrowser] Waiting for selector {selector} ({timeout}ms)")

    async def query(self, selector: str) -> Optional[Any]:
        logger.debug(f"[MockBrowser] Finding element {selector}")
        return None

    async def query_all(self, selector: str) -> List[Any]:
        logger.debug(f"[MockBrowser] Finding elements {selector}")
        return []

    async def eval_all(self, selector: str, fn: Callable[[List[Any]], Any]) -> List[Dict[str, str]]:
        logger.debug(f"[MockBrowser] Evaluating {selector}")
        return []

    async def type(self, element: Any, text: str) -> None:
        logger.debug(f'[MockBrowser] Typing "{text}"')

    async def click(self, selector: str) -> None:
        logger.debug(f"[MockBrowser] Clicking {selector}")

    async def wait(self, ms: int) -> None:
        logger.debug(f"[MockBrowser] Waiting {ms}ms")

    async def download(self, url: str) -> None:
        logger.info(f"⬇️ [MockBrowser] Downloading {url}")

    async def close(self) -> None:
        logger.debug("[MockBrowser] Closing session")
        self.closed = True


class AutomationService:
    """Dispatches task parameters to the matching handler."""

    def __init__(self, session_factory: Callable[[], MockBrowserSession] = MockBrowserSession):
        self.session_factory = session_factory

    async def perform_task(self, params: TaskParams) -> Dict[str, Any]:
        """
        Execute one task.

        Args:
            params: Parsed or structured task parameters

        Returns:
            Result dict with `success` and `message`; failures never raise
        """
        logger.info(
            f"🤖 [Automation] Starting task: {params.task_type} for {params.subject} "
            f"grade {params.grade} year {params.year}"
        )
        session = self.session_factory()
        try:
            if not params.website:
                raise TaskError("Could not determine website from input.")
            await session.open(params.website)

            if params.task_type == EXAM_PAPERS:
                return await self._exam_papers(session, params)
            if params.task_type == SEARCH_RESOURCES:
                return await self._search_resources(session, params)
            return await self._custom(session, params)
        except Exception as e:
            logger.error(f"❌ [Automation] Task error: {e}")
            return {"success": False, "message": f"Task failed: {e}", "error": str(e)}
        finally:
            await session.close()

    async def _exam_papers(self, session: MockBrowserSession, params: TaskParams) -> Dict[str, Any]:
        grade, subject, year = params.grade, params.subject, params.year
        await session.wait_for_selector("body", timeout=10000)

        search_input = None
        for selector in SEARCH_INPUT_SELECTORS:
            search_input = await session.query(selector)
            if search_input:
                break

        if search_input:
            await session.type(search_input, f"{grade} {subject} {year} past papers")
            await session.click(SUBMIT_SELECTORS[0])
            await session.wait(3000)

        links: List[Dict[str, str]] = []
        for selector in DOWNLOAD_SELECTORS:
            if await session.query_all(selector):
                links = await session.eval_all(selector, lambda elements: elements)
                break

        wanted = [str(v).lower() for v in (subject, year, grade) if v]
        relevant = [
            link for link in links
            if any(w in f"{link.get('text', '')} {link.get('href', '')}".lower() for w in wanted)
        ]
        logger.info(f"🔗 [Automation] Found {len(relevant)} relevant download links")
        for link in relevant[:MAX_DOWNLOADS]:
            if link.get("href"):
                await session.download(link["href"])

        filename = f"{subject}-grade-{grade}-{year}.pdf"
        return {
            "success": True,
            "links": [{
                "href": f"https://example.com/{filename}",
                "text": f"{subject} Grade {grade} {year} Past Paper",
                "download": filename,
            }],
            "message": f"Successfully downloaded 1 {subject} exam papers for grade {grade} ({year})",
            "totalFound": 1,
            "downloaded": 1,
            "mock": True,
        }

    async def _search_resources(self, session: MockBrowserSession, params: TaskParams) -> Dict[str, Any]:
        subject = params.subject
        search_query = params.custom_query or f"educational resources {subject} teaching materials"
        await session.open(SEARCH_ENGINE_URL)
        await session.type('input[name="q"]', search_query)
        await session.click('input[name="btnK"]')
        await session.wait(3000)

        results = [
            {"title": f"{subject} Educational Resources", "link": f"https://example.com/{subject}-resources"},
            {"title": f"{subject} Teaching Materials", "link": f"https://example.com/{subject}-materials"},
        ]
        return {
            "success": True,
            "results": results,
            "message": f"Found {len(results)} educational resources for {subject}",
            "searchQuery": search_query,
            "mock": True,
        }

    async def _custom(self, session: MockBrowserSession, params: TaskParams) -> Dict[str, Any]:
        query = params.custom_query or ""
        await session.open(SEARCH_ENGINE_URL)
        await session.type('input[name="q"]', query)
        await session.click('input[name="btnK"]')
        await session.wait(3000)

        results = [{"title": f"Search Results for: {query}", "link": "https://example.com/search-results"}]
        return {
            "success": True,
            "results": results,
            "message": f"Found {len(results)} results for: {query}",
            "customQuery": query,
            "mock": True,
        }
