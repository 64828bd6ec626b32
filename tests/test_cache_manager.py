import unittest
from unittest import mock

import requests
from PIL import Image

from cache_manager import ThumbnailCache, decode_rgba
from errors import DecodeError
from fakes import FakeResponse, FakeSession, image_bytes

THUMB = "https://th.wallhaven.cc/small/ab/abc123.jpg"


class TestThumbnailCache(unittest.TestCase):

    def test_second_request_hits_cache(self):
        session = FakeSession({THUMB: FakeResponse(content=image_bytes())})
        cache = ThumbnailCache(session=session)

        first = cache.materialize(THUMB)
        second = cache.materialize(THUMB)

        self.assertIsNotNone(first)
        self.assertIs(first, second)
        self.assertEqual(session.calls, [THUMB])

    def test_handle_is_rgba_with_size(self):
        session = FakeSession({THUMB: FakeResponse(content=image_bytes((30, 20), fmt="JPEG"))})
        handle = ThumbnailCache(session=session).materialize(THUMB)
        self.assertEqual(handle.mode, "RGBA")
        self.assertEqual(handle.size, (30, 20))

    def test_handle_factory(self):
        session = FakeSession({THUMB: FakeResponse(content=image_bytes())})
        cache = ThumbnailCache(session=session, make_handle=lambda img: ("handle", img.size))
        self.assertEqual(cache.materialize(THUMB), ("handle", (8, 6)))

    def test_failure_not_cached_and_retried(self):
        session = FakeSession({THUMB: [
            requests.exceptions.ConnectionError("down"),
            FakeResponse(content=image_bytes()),
        ]})
        cache = ThumbnailCache(session=session)

        self.assertIsNone(cache.materialize(THUMB))
        self.assertFalse(cache.is_ready(THUMB))
        self.assertIsNotNone(cache.materialize(THUMB))
        self.assertTrue(cache.is_ready(THUMB))
        self.assertEqual(len(session.calls), 2)

    def test_undecodable_bytes_pending(self):
        session = FakeSession({THUMB: FakeResponse(content=b"definitely not an image")})
        cache = ThumbnailCache(session=session)
        self.assertIsNone(cache.materialize(THUMB))
        self.assertEqual(len(cache), 0)

    def test_oversized_image_pending(self):
        session = FakeSession({THUMB: FakeResponse(content=image_bytes((64, 48)))})
        cache = ThumbnailCache(session=session)
        with mock.patch.object(Image, "MAX_IMAGE_PIXELS", 100):
            self.assertIsNone(cache.materialize(THUMB))
        self.assertFalse(cache.is_ready(THUMB))
        self.assertIsNotNone(cache.materialize(THUMB))

    def test_http_error_pending(self):
        session = FakeSession({THUMB: FakeResponse(status_code=404)})
        self.assertIsNone(ThumbnailCache(session=session).materialize(THUMB))

    def test_clear_bumps_generation_and_refetches(self):
        session = FakeSession({THUMB: FakeResponse(content=image_bytes())})
        cache = ThumbnailCache(session=session)
        cache.materialize(THUMB)

        generation = cache.clear()

        self.assertEqual(generation, 1)
        self.assertEqual(len(cache), 0)
        cache.materialize(THUMB)
        self.assertEqual(len(session.calls), 2)

    def test_stale_generation_dropped(self):
        cache = ThumbnailCache(session=FakeSession())
        old = cache.generation
        cache.clear()
        self.assertFalse(cache.store(THUMB, object(), old))
        self.assertNotIn(THUMB, cache)
        self.assertTrue(cache.store(THUMB, object(), cache.generation))
        self.assertIn(THUMB, cache)


class TestDecode(unittest.TestCase):

    def test_decode_error(self):
        with self.assertRaises(DecodeError):
            decode_rgba(b"\x00\x01\x02")

    def test_decompression_bomb_is_decode_error(self):
        with mock.patch.object(Image, "MAX_IMAGE_PIXELS", 100):
            with self.assertRaises(DecodeError):
                decode_rgba(image_bytes((64, 48)))


if __name__ == '__main__':
    unittest.main()
