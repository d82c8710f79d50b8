# src/scraping.py
"""Novel table-of-contents scraping.

Fetches ``https://{ncode|novel18}.syosetu.com/{ncode}/`` and extracts the
novel title, author, description and episode subtitles. Both the classic
markup (``.novel_title``, ``.subtitle a``) and the current one
(``.p-novel__title``, ``.p-eplist__subtitle``) are understood.

Usage:
    fetcher = SyosetuFetcher(user_agent=USER_AGENT)
    novel = await fetcher.fetch(key)
"""

from bs4 import BeautifulSoup

from models import Category, ExtractError, NovelData, NovelFetchError, NovelKey
from utils import log_op
from wrappers import HttpFetchError, safe_http_fetch

# Episode links beyond this number are ignored
NUM_LIMIT = 10000

TITLE_SELECTOR = ".novel_title, .p-novel__title"
SUBTITLE_SELECTOR = ".subtitle a, a.p-eplist__subtitle"
AUTHOR_SELECTOR = ".novel_writername, .p-novel__author"

CLASSIC_DESCRIPTION_SELECTOR = "#novel_ex"
MODERN_DESCRIPTION_SELECTOR = ".p-novel__summary"

AUTHOR_PREFIXES = ("作者：", "作者:")

# novel18 shows an age gate unless this cookie is present
R18_COOKIE = "over18=yes"


class SyosetuFetcher:
    """NovelFetcher that scrapes syosetu table-of-contents pages."""

    def __init__(self, user_agent: str, timeout_seconds: int = 30) -> None:
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds

    async def fetch(self, key: NovelKey) -> NovelData:
        headers = {"User-Agent": self.user_agent}
        if key.category is Category.R18:
            headers["Cookie"] = R18_COOKIE

        try:
            response = await safe_http_fetch(
                key.site_url, headers=headers, timeout_seconds=self.timeout_seconds
            )
        except HttpFetchError as e:
            raise NovelFetchError(f"request error: {e}") from e

        if not response.ok:
            raise NovelFetchError(f"HTTP {response.status_code}")

        data = extract_novel_data(response.text)
        log_op(
            "novel_scraped",
            ncode=str(key.ncode),
            episodes=len(data.subtitles),
            response_size_bytes=len(response.text),
        )
        return data


def extract_novel_data(html: str) -> NovelData:
    """Extract novel data from a table-of-contents page.

    Raises:
        ExtractError: if the page has no title, several titles, or no
            episode links.
    """
    soup = BeautifulSoup(html, "html.parser")

    titles = soup.select(TITLE_SELECTOR, limit=2)
    if len(titles) > 1:
        raise ExtractError("too many titles")
    if not titles:
        raise ExtractError("missing title")
    title = titles[0].get_text().strip()
    if not title:
        raise ExtractError("missing title")

    subtitles: list[str] = []
    for link in soup.select(SUBTITLE_SELECTOR):
        href = link.get("href")
        if not href:
            continue
        index = episode_index_from_href(href)
        if index is None or index >= NUM_LIMIT:
            continue
        while len(subtitles) <= index:
            subtitles.append("")
        subtitles[index] = link.get_text().strip()
    if not subtitles:
        raise ExtractError("no episode found")

    author, author_url = _extract_author(soup)
    description_el = soup.select_one(CLASSIC_DESCRIPTION_SELECTOR) or soup.select_one(
        MODERN_DESCRIPTION_SELECTOR
    )
    description = description_el.get_text().strip() if description_el else ""

    return NovelData(
        title=title,
        subtitles=tuple(subtitles),
        author=author,
        author_url=author_url,
        description=description,
    )


def episode_index_from_href(href: str) -> int | None:
    """Map an episode link like ``/n4830bu/3/`` to its 0-based index."""
    parts = href.split("/")
    # ["", "n4830bu", "3", ""]
    if len(parts) < 3 or parts[0] != "":
        return None
    num_part = parts[2]
    if not num_part.isascii() or not num_part.isdigit():
        return None
    num = int(num_part)
    if num == 0:
        return None
    return num - 1


def _extract_author(soup: BeautifulSoup) -> tuple[str, str | None]:
    element = soup.select_one(AUTHOR_SELECTOR)
    if element is None:
        return "", None

    name = element.get_text().strip()
    for prefix in AUTHOR_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix) :].strip()
            break

    link = element.find("a", href=True)
    return name, link["href"] if link else None
