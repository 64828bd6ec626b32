import re
from dataclasses import dataclass, field, replace
from enum import Enum
from urllib.parse import quote_plus

import requests

from errors import NetworkError, ParseError
from logger import get_logger

log = get_logger("api")

API_URL = "https://wallhaven.cc/api/v1/search"

MIN_PAGES = 1
MAX_PAGES = 50
DEFAULT_MAX_PAGES = 5

# Label -> bit string, in display order
CATEGORY_PRESETS = {
    "General": "100",
    "Anime": "010",
    "People": "001",
    "All": "111",
}
PURITY_PRESETS = {
    "SFW": "100",
    "SFW+Sketchy": "110",
    "All": "111",
}

_BITS_RE = re.compile(r"^[01]{3}$")


class AspectRatio(Enum):
    ANY = "any"
    WIDE_16_9 = "16x9"
    ULTRAWIDE_21_9 = "21x9"

    @property
    def label(self):
        return {"any": "Any", "16x9": "16:9", "21x9": "21:9"}[self.value]

    @classmethod
    def from_label(cls, label):
        for ratio in cls:
            if ratio.label == label:
                return ratio
        raise ValueError(f"Unknown aspect ratio: {label!r}")


def clamp_max_pages(value):
    """Clamp a page cap into [MIN_PAGES, MAX_PAGES]."""
    return max(MIN_PAGES, min(MAX_PAGES, int(value)))


def _check_bits(name, value):
    if not isinstance(value, str) or not _BITS_RE.match(value):
        raise ValueError(f"{name} must be a 3-character bit string, got {value!r}")
    return value


@dataclass(frozen=True)
class SearchFilter:
    query: str = ""
    categories: str = "111"
    purity: str = "100"
    ratio: AspectRatio = AspectRatio.ANY
    max_pages: int = DEFAULT_MAX_PAGES

    def __post_init__(self):
        _check_bits("categories", self.categories)
        _check_bits("purity", self.purity)
        if not isinstance(self.ratio, AspectRatio):
            object.__setattr__(self, "ratio", AspectRatio(self.ratio))
        object.__setattr__(self, "max_pages", clamp_max_pages(self.max_pages))

    def evolve(self, **changes):
        return replace(self, **changes)


@dataclass(frozen=True)
class ImageResult:
    full_image_url: str
    thumbnail_url: str


@dataclass(frozen=True)
class PageMeta:
    current_page: int
    last_page: int
    per_page: int
    total: int


@dataclass
class SearchPage:
    meta: PageMeta
    results: list = field(default_factory=list)


def build_search_url(page, search_filter, base_url=API_URL):
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")

    url = (
        f"{base_url}?q={quote_plus(search_filter.query)}"
        f"&categories={search_filter.categories}"
        f"&purity={search_filter.purity}"
        f"&sorting=relevance&page={page}"
    )
    # No ratios parameter at all means "any ratio" to the API
    if search_filter.ratio is not AspectRatio.ANY:
        url += f"&ratios={search_filter.ratio.value}"
    return url


def parse_search_page(payload):
    """
    Turn a decoded search response into a SearchPage.
    Raises ParseError when the body does not have the documented shape.
    """
    try:
        meta_json = payload["meta"]
        meta = PageMeta(
            current_page=int(meta_json["current_page"]),
            last_page=int(meta_json["last_page"]),
            per_page=int(meta_json["per_page"]),
            total=int(meta_json["total"]),
        )
        results = [
            ImageResult(full_image_url=item["path"], thumbnail_url=item["thumbs"]["small"])
            for item in payload["data"]
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise ParseError(f"Unexpected search response: {e}") from e
    return SearchPage(meta=meta, results=results)


class WallhavenClient:
    def __init__(self, base_url=API_URL, user_agent="WallhavenBrowser/1.0", timeout=None, session=None):
        self.base_url = base_url
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent}
        self.session = session or requests.Session()

    def search_url(self, page, search_filter):
        return build_search_url(page, search_filter, base_url=self.base_url)

    def fetch_page(self, page, search_filter):
        """
        Fetch and parse one result page.
        """
        url = self.search_url(page, search_filter)
        log.debug("GET %s", url)
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Error fetching page {page}: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ParseError(f"Page {page} is not valid JSON: {e}") from e
        return parse_search_page(payload)
