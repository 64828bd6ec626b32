import hashlib
import os
from enum import Enum

import requests
from PIL import Image

from cache_manager import decode_rgba
from errors import DownloadError, IoError, WallhavenError
from logger import get_logger

log = get_logger("downloader")

CANVAS_SIZE = (3840, 2160)
DOWNLOAD_FAILED = "Failed to download wallpaper"


class DownloadPolicy(Enum):
    NATIVE = "native"
    FIXED_CANVAS = "fixed_canvas"


def filename_for_url(url):
    """Name a download after the SHA-1 of its URL, not of its content."""
    return hashlib.sha1(url.encode("utf-8")).hexdigest() + ".jpg"


class DownloadManager:
    def __init__(self, policy=DownloadPolicy.NATIVE, session=None, user_agent="WallhavenBrowser/1.0", timeout=None):
        self.policy = DownloadPolicy(policy)
        self.session = session or requests.Session()
        self.headers = {"User-Agent": user_agent}
        self.timeout = timeout

    def fetch_image(self, url):
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DownloadError(f"Error downloading {url}: {e}") from e
        return response.content

    def transform(self, img):
        if self.policy is DownloadPolicy.FIXED_CANVAS and img.size != CANVAS_SIZE:
            img = img.resize(CANVAS_SIZE, Image.Resampling.LANCZOS)
        # JPEG has no alpha channel
        return img.convert("RGB")

    def save_image(self, url, download_dir):
        """
        Fetch url, apply the download policy and write it as JPEG.
        Returns the path written. Raises a WallhavenError subclass on failure.
        """
        data = self.fetch_image(url)
        img = self.transform(decode_rgba(data))

        save_path = os.path.join(download_dir, filename_for_url(url))
        try:
            os.makedirs(download_dir, exist_ok=True)
            img.save(save_path, format="JPEG", quality=95)
        except OSError as e:
            if os.path.exists(save_path):
                try:
                    os.remove(save_path)
                except OSError:
                    log.warning("Could not remove partial file %s", save_path)
            raise IoError(f"Cannot write {save_path}: {e}") from e
        return save_path

    def download(self, url, download_dir):
        try:
            save_path = self.save_image(url, download_dir)
        except WallhavenError as e:
            log.error("Download failed: %s", e)
            return DOWNLOAD_FAILED
        log.info("Saved %s to %s", url, save_path)
        return f"Saved wallpaper to {save_path}"
