from io import BytesIO

import requests
from PIL import Image, UnidentifiedImageError

from errors import DecodeError, NetworkError
from logger import get_logger

log = get_logger("cache")


def decode_rgba(data):
    """Decode raw image bytes into an RGBA image with a known size."""
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e
    return img.convert("RGBA")


class ThumbnailCache:
    """
    In-memory thumbnail handles for the current result set.

    Entries are created the first time a thumbnail is asked for and live
    until clear() is called for the next result set. Failed fetches are not
    remembered, so the next request for the same URL tries again.
    """

    def __init__(self, session=None, make_handle=None, user_agent="WallhavenBrowser/1.0", timeout=None):
        self.session = session or requests.Session()
        self.headers = {"User-Agent": user_agent}
        self.timeout = timeout
        self.make_handle = make_handle or (lambda img: img)
        self.generation = 0
        self._handles = {}

    def __len__(self):
        return len(self._handles)

    def __contains__(self, url):
        return url in self._handles

    def is_ready(self, url):
        return url in self._handles

    def get(self, url):
        return self._handles.get(url)

    def store(self, url, handle, generation):
        # Handles fetched for an older result set are dropped
        if generation != self.generation:
            log.debug("Dropping stale thumbnail %s (generation %d != %d)", url, generation, self.generation)
            return False
        self._handles[url] = handle
        return True

    def clear(self):
        self._handles.clear()
        self.generation += 1
        return self.generation

    def fetch(self, url):
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Error fetching thumbnail {url}: {e}") from e
        return decode_rgba(response.content)

    def materialize(self, url):
        """Return the handle for url, or None while it is not available."""
        handle = self._handles.get(url)
        if handle is not None:
            return handle

        generation = self.generation
        try:
            img = self.fetch(url)
        except (NetworkError, DecodeError) as e:
            log.debug("Thumbnail not available yet: %s", e)
            return None

        handle = self.make_handle(img)
        if not self.store(url, handle, generation):
            return None
        return handle
