import unittest

import requests

from aggregator import FETCH_FAILED, PARSE_FAILED, ResultAggregator
from fakes import FakeResponse, FakeSession, page_payload
from wallhaven_api import SearchFilter, WallhavenClient, build_search_url


def make_aggregator(routes):
    session = FakeSession(routes)
    return ResultAggregator(WallhavenClient(session=session)), session


class TestResultAggregator(unittest.TestCase):

    def setUp(self):
        self.filter = SearchFilter(query="mountains", max_pages=5)

    def url(self, page):
        return build_search_url(page, self.filter)

    def test_stops_at_last_page(self):
        routes = {self.url(p): FakeResponse(payload=page_payload(p, 3, [f"p{p}"])) for p in range(1, 6)}
        aggregator, session = make_aggregator(routes)

        outcome = aggregator.search(self.filter)

        self.assertEqual(session.calls, [self.url(1), self.url(2), self.url(3)])
        self.assertEqual(len(outcome.results), 3)
        self.assertFalse(outcome.failed)

    def test_stops_at_max_pages(self):
        f = self.filter.evolve(max_pages=2)
        routes = {build_search_url(p, f): FakeResponse(payload=page_payload(p, 10, [f"p{p}"])) for p in range(1, 11)}
        aggregator, session = make_aggregator(routes)

        outcome = aggregator.search(f)

        self.assertEqual(len(session.calls), 2)
        self.assertEqual(outcome.pages_loaded, 2)
        self.assertEqual(outcome.last_page, 10)

    def test_failed_middle_page_is_skipped(self):
        routes = {
            self.url(1): FakeResponse(payload=page_payload(1, 3, ["a", "b"])),
            self.url(2): requests.exceptions.ConnectionError("boom"),
            self.url(3): FakeResponse(payload=page_payload(3, 3, ["c"])),
        }
        aggregator, session = make_aggregator(routes)

        outcome = aggregator.search(self.filter)

        self.assertFalse(outcome.failed)
        self.assertEqual(len(session.calls), 3)
        self.assertEqual([r.full_image_url.rsplit("/", 1)[-1] for r in outcome.results],
                         ["a.jpg", "b.jpg", "c.jpg"])
        self.assertEqual(outcome.pages_loaded, 2)

    def test_unparseable_middle_page_is_skipped(self):
        routes = {
            self.url(1): FakeResponse(payload=page_payload(1, 3, ["a"])),
            self.url(2): FakeResponse(content=b"not json"),
            self.url(3): FakeResponse(payload=page_payload(3, 3, ["c"])),
        }
        aggregator, _ = make_aggregator(routes)
        outcome = aggregator.search(self.filter)
        self.assertEqual(len(outcome.results), 2)
        self.assertFalse(outcome.failed)

    def test_summary(self):
        routes = {self.url(p): FakeResponse(payload=page_payload(p, 2, ["x", "y"], per_page=24)) for p in (1, 2)}
        aggregator, _ = make_aggregator(routes)
        outcome = aggregator.search(self.filter)
        self.assertEqual(outcome.status, "Found 4 results (pages loaded: 2/2, per page: 24)")

    def test_first_page_network_failure(self):
        aggregator, session = make_aggregator({self.url(1): FakeResponse(status_code=503)})
        outcome = aggregator.search(self.filter)
        self.assertTrue(outcome.failed)
        self.assertEqual(outcome.status, FETCH_FAILED)
        self.assertEqual(outcome.results, [])
        self.assertEqual(len(session.calls), 1)

    def test_first_page_parse_failure(self):
        aggregator, _ = make_aggregator({self.url(1): FakeResponse(payload={"data": "nope"})})
        outcome = aggregator.search(self.filter)
        self.assertTrue(outcome.failed)
        self.assertEqual(outcome.status, PARSE_FAILED)

    def test_empty_search(self):
        aggregator, session = make_aggregator({self.url(1): FakeResponse(payload=page_payload(1, 1, [], total=0))})
        outcome = aggregator.search(self.filter)
        self.assertEqual(outcome.results, [])
        self.assertEqual(len(session.calls), 1)
        self.assertFalse(outcome.failed)


if __name__ == '__main__':
    unittest.main()
