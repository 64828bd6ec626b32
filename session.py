from aggregator import ResultAggregator
from cache_manager import ThumbnailCache
from downloader import DownloadManager
from logger import get_logger
from wallhaven_api import AspectRatio, SearchFilter, WallhavenClient

log = get_logger("session")


class BrowserSession:
    """
    Owns everything the window shows: the filter, the current result set,
    the thumbnail cache, the status line and the download directory.

    The window reports user actions here and reads state back to render.
    All calls block until their network work is done.
    """

    def __init__(self, settings, client=None, thumbnails=None, downloader=None, make_handle=None):
        self.download_dir = settings.download_path
        self.filter = SearchFilter(
            categories=settings.categories,
            purity=settings.purity,
            max_pages=settings.max_pages,
        )
        self.client = client or WallhavenClient(
            base_url=settings.api_url, user_agent=settings.user_agent, timeout=settings.timeout)
        self.aggregator = ResultAggregator(self.client)
        self.thumbnails = thumbnails or ThumbnailCache(
            make_handle=make_handle, user_agent=settings.user_agent, timeout=settings.timeout)
        self.downloader = downloader or DownloadManager(
            policy=settings.download_policy, user_agent=settings.user_agent, timeout=settings.timeout)
        self.results = []
        self.status = ""

    @property
    def generation(self):
        return self.thumbnails.generation

    # Filter changes

    def set_query(self, text):
        self.filter = self.filter.evolve(query=text)

    def set_categories(self, bits):
        self.filter = self.filter.evolve(categories=bits)

    def set_purity(self, bits):
        self.filter = self.filter.evolve(purity=bits)

    def set_ratio(self, ratio):
        self.filter = self.filter.evolve(ratio=AspectRatio(ratio))

    def set_max_pages(self, value):
        """
        Apply a page cap typed by the user. Non-numeric input leaves the
        current value alone; numbers are clamped into the allowed range.
        """
        try:
            pages = int(str(value).strip())
        except ValueError:
            return self.filter.max_pages
        self.filter = self.filter.evolve(max_pages=pages)
        return self.filter.max_pages

    # Actions

    def search(self):
        outcome = self.aggregator.search(self.filter)
        self.results = outcome.results
        self.thumbnails.clear()
        self.status = outcome.status
        return outcome

    def thumbnail(self, url):
        return self.thumbnails.materialize(url)

    def is_thumbnail_ready(self, url):
        return self.thumbnails.is_ready(url)

    def download(self, full_image_url):
        self.status = self.downloader.download(full_image_url, self.download_dir)
        return self.status
