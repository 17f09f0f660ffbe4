"""
Tutorial and FAQ search.

Responsibilities:
- Resolve catalog matches for a tutorial series search
- Query the remote FAQ index and collect article links
- Scrape each hit into a SearchResult
- Cap results in guild channels so chat is not flooded (DMs are uncapped)
"""

from __future__ import annotations

import json
from typing import List
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from services.playtest.errors import TransportError
from services.search.catalog import TutorialCatalog, is_faq
from services.search.models import SearchResult
from services.search.scraper import PageScraper
from shared.config.bot import SearchConfig, SiteConfig
from shared.logging.logger import get_logger

log = get_logger("search.service")

GUILD_RESULT_LIMIT = 2

TUTORIAL_CONTENT_ID = "content-area"
FAQ_CONTENT_ID = "kb-article-content"
TUTORIAL_DESCRIPTION_LIMIT = 250
FAQ_DESCRIPTION_LIMIT = 180


class SearchService:
    def __init__(
        self,
        *,
        catalog: TutorialCatalog,
        scraper: PageScraper,
        search: SearchConfig,
        site: SiteConfig,
    ):
        self._catalog = catalog
        self._scraper = scraper
        self._search = search
        self._site = site

    # ------------------------------------------------------------
    # Tutorials
    # ------------------------------------------------------------

    async def search(self, series: str, term: str, *, private: bool) -> List[SearchResult]:
        if is_faq(series):
            return await self.search_faq(term, private=private)

        matches = self._catalog.match(series, term)
        log.info(f"Tutorial search series={series!r} term={term!r}: {len(matches)} match(es)")

        capped = series.strip().lower() == "all" and not private
        results: List[SearchResult] = []

        async with self._scraper.client() as client:
            for tutorial in matches:
                if capped and len(results) >= GUILD_RESULT_LIMIT:
                    results.append(self._view_all_tutorials())
                    break

                try:
                    page = await self._scraper.scrape(
                        client,
                        tutorial.url,
                        content_id=TUTORIAL_CONTENT_ID,
                        max_description=TUTORIAL_DESCRIPTION_LIMIT,
                    )
                except TransportError as e:
                    log.warning(f"Skipping tutorial result: {e.message}")
                    continue

                results.append(
                    SearchResult(
                        title=page.title,
                        url=tutorial.url,
                        description=page.description,
                        image_url=page.image_url,
                    )
                )

        return results

    def _view_all_tutorials(self) -> SearchResult:
        return SearchResult(
            title="View All Tutorials",
            url=self._site.tutorials_url,
            description=(
                "There are more results than I can display without flooding chat. "
                "Consider viewing all tutorials, or do a search without `all`. "
                "If you DM me your search the results won't be limited."
            ),
        )

    # ------------------------------------------------------------
    # FAQ
    # ------------------------------------------------------------

    async def search_faq(self, term: str, *, private: bool) -> List[SearchResult]:
        url = f"{self._search.faq_search_url}{quote_plus(term)}"
        results: List[SearchResult] = []

        async with self._scraper.client() as client:
            try:
                body = await self._scraper.fetch_html(client, url)
            except TransportError as e:
                log.warning(f"FAQ search failed: {e.message}")
                return []

            links = extract_faq_links(body)
            log.info(f"FAQ search term={term!r}: {len(links)} link(s)")

            for link in links:
                if not private and len(results) >= GUILD_RESULT_LIMIT:
                    results.append(self._view_faq())
                    break

                try:
                    page = await self._scraper.scrape(
                        client,
                        link,
                        content_id=FAQ_CONTENT_ID,
                        max_description=FAQ_DESCRIPTION_LIMIT,
                    )
                except TransportError as e:
                    log.warning(f"Skipping FAQ result: {e.message}")
                    continue

                results.append(
                    SearchResult(
                        title=page.title,
                        url=link,
                        description=page.description,
                        image_url=page.image_url,
                    )
                )

        return results

    def _view_faq(self) -> SearchResult:
        return SearchResult(
            title="I cannot display any more results!",
            url=self._site.faq_url,
            description=(
                "I found more results than I can display here. Consider going "
                "directly to the FAQ main page and searching from there. "
                "If you DM me your search results won't be limited."
            ),
        )


def extract_faq_links(body: str) -> List[str]:
    """
    Pull article links out of the FAQ search response.

    The knowledge-base endpoint answers with JSON wrapping an HTML fragment;
    older deployments return the fragment with escaped quotes and slashes.
    """
    html = body
    try:
        data = json.loads(body)
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("search_result"), str):
        html = data["search_result"]

    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].replace("\\", "").replace('"', "").strip()
        if href and href not in links:
            links.append(href)
    return links
