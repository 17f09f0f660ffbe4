"""Page scraper for tutorial and FAQ search results."""
import random
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from services.playtest.errors import TransportError
from services.search.models import ScrapedPage
from shared.logging.logger import get_logger

log = get_logger("search.scraper")

TITLE_SUFFIX = " | TopHATTwaffle"

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def clean_text(text: str) -> str:
    """Drop newlines and typographic quotes/dashes the site's CMS inserts."""
    return (
        text.replace("\n", "")
        .replace("–", "-")
        .replace("“", '"')
        .replace("”", '"')
        .replace("’", "'")
        .strip()
    )


def truncate(text: str, limit: int) -> str:
    if len(text) >= limit:
        return text[:limit] + "..."
    return text


class PageScraper:
    """
    Fetches a result page and extracts its title, a short summary and an image.

    Article content is only extracted from pages on the community site, where
    the content container id is known.
    """

    def __init__(
        self,
        *,
        site_domain: str,
        default_image_url: str,
        timeout: float = 15.0,
        rng: Optional[random.Random] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.site_domain = site_domain.lower()
        self.default_image_url = default_image_url
        self.timeout = timeout
        self._rng = rng or random.Random()
        self._transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers=HEADERS,
            transport=self._transport,
        )

    async def fetch_html(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            resp = await client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to fetch {url}: {e}", operation="scrape") from e
        return resp.text

    async def scrape(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        content_id: str,
        max_description: int,
    ) -> ScrapedPage:
        html = await self.fetch_html(client, url)
        return self.parse(
            html,
            url=url,
            content_id=content_id,
            max_description=max_description,
        )

    def parse(
        self,
        html: str,
        *,
        url: str,
        content_id: str,
        max_description: int,
    ) -> ScrapedPage:
        soup = BeautifulSoup(html, "html.parser")

        title = soup.title.get_text() if soup.title else url
        title = clean_text(title).replace(TITLE_SUFFIX, "")

        description = ""
        if self.site_domain in url.lower():
            content = soup.find(id=content_id)
            if content is not None:
                description = clean_text(content.get_text())
            else:
                log.debug(f"No #{content_id} element on {url}")
        description = truncate(description, max_description)

        images = [img["src"] for img in soup.find_all("img") if img.get("src")]
        image_url = self.default_image_url
        if len(images) > 1:
            image_url = self._rng.choice(images)

        return ScrapedPage(title=title, description=description, image_url=image_url)
