from dataclasses import dataclass, field

from errors import NetworkError, ParseError
from logger import get_logger

log = get_logger("aggregator")

FETCH_FAILED = "Failed to fetch from Wallhaven"
PARSE_FAILED = "Failed to parse API response"


@dataclass
class SearchOutcome:
    status: str
    results: list = field(default_factory=list)
    pages_loaded: int = 0
    last_page: int = 0
    per_page: int = 0
    failed: bool = False


def format_summary(count, pages_loaded, last_page, per_page):
    return f"Found {count} results (pages loaded: {pages_loaded}/{last_page}, per page: {per_page})"


class ResultAggregator:
    """
    Walks the search pages one after another and merges their results.

    Page 1 must succeed, later pages are best effort: a page that cannot be
    fetched or parsed is left out and the search carries on.
    """

    def __init__(self, client):
        self.client = client

    def search(self, search_filter):
        log.info("Searching %r (categories=%s, purity=%s, ratio=%s, max pages=%d)",
                 search_filter.query, search_filter.categories, search_filter.purity,
                 search_filter.ratio.value, search_filter.max_pages)
        try:
            first = self.client.fetch_page(1, search_filter)
        except NetworkError as e:
            log.error("Search failed: %s", e)
            return SearchOutcome(status=FETCH_FAILED, failed=True)
        except ParseError as e:
            log.error("Search failed: %s", e)
            return SearchOutcome(status=PARSE_FAILED, failed=True)

        last_page = first.meta.last_page
        pages_to_fetch = max(1, min(search_filter.max_pages, last_page))

        results = list(first.results)
        pages_loaded = 1
        for page in range(2, pages_to_fetch + 1):
            try:
                fetched = self.client.fetch_page(page, search_filter)
            except (NetworkError, ParseError) as e:
                log.warning("Skipping page %d: %s", page, e)
                continue
            results.extend(fetched.results)
            pages_loaded += 1

        status = format_summary(len(results), pages_loaded, last_page, first.meta.per_page)
        log.info(status)
        return SearchOutcome(
            status=status,
            results=results,
            pages_loaded=pages_loaded,
            last_page=last_page,
            per_page=first.meta.per_page,
        )
