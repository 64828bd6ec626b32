import os
from dataclasses import dataclass

from dotenv import load_dotenv, set_key

from downloader import DownloadPolicy
from logger import get_logger, setup_logging
from wallhaven_api import API_URL, DEFAULT_MAX_PAGES, clamp_max_pages

log = get_logger("settings")

ENV_FILE = ".env"
PREFIX = "WALLHAVEN_"


def default_download_dir():
    downloads = os.path.join(os.path.expanduser("~"), "Downloads")
    if os.path.isdir(downloads):
        return downloads
    return os.path.abspath(".")


@dataclass
class Settings:
    api_url: str = API_URL
    download_path: str = ""
    max_pages: int = DEFAULT_MAX_PAGES
    categories: str = "111"
    purity: str = "100"
    download_policy: DownloadPolicy = DownloadPolicy.NATIVE
    timeout: float = None
    user_agent: str = "WallhavenBrowser/1.0"
    log_level: str = "INFO"
    log_file: str = None


def _env(name, default=None):
    value = os.getenv(PREFIX + name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _bits(name, default):
    value = _env(name, default)
    if len(value) == 3 and set(value) <= {"0", "1"}:
        return value
    log.warning("Ignoring %s%s=%r, using %s", PREFIX, name, value, default)
    return default


def load_settings(env_file=ENV_FILE):
    """Read WALLHAVEN_* variables (after loading .env) into a Settings."""
    load_dotenv(env_file)
    settings = Settings()

    settings.api_url = _env("API_URL", API_URL)
    settings.download_path = _env("DOWNLOAD_PATH") or default_download_dir()

    try:
        settings.max_pages = clamp_max_pages(_env("MAX_PAGES", DEFAULT_MAX_PAGES))
    except ValueError:
        log.warning("Invalid %sMAX_PAGES, using %d", PREFIX, DEFAULT_MAX_PAGES)

    settings.categories = _bits("CATEGORIES", "111")
    settings.purity = _bits("PURITY", "100")

    try:
        settings.download_policy = DownloadPolicy(_env("DOWNLOAD_POLICY", "native").lower())
    except ValueError:
        log.warning("Invalid %sDOWNLOAD_POLICY, using native", PREFIX)

    timeout = _env("TIMEOUT")
    if timeout is not None:
        try:
            settings.timeout = float(timeout)
        except ValueError:
            log.warning("Invalid %sTIMEOUT=%r, requests will not time out", PREFIX, timeout)

    settings.user_agent = _env("USER_AGENT", settings.user_agent)
    settings.log_level = _env("LOG_LEVEL", settings.log_level)
    settings.log_file = _env("LOG_FILE")
    return settings


def save_setting(name, value, env_file=ENV_FILE):
    try:
        if not os.path.exists(env_file):
            open(env_file, 'w').close()
        set_key(env_file, PREFIX + name, str(value))
    except OSError as e:
        log.error("Failed to save %s%s: %s", PREFIX, name, e)


def configure(env_file=ENV_FILE):
    """
    Set up logging from the environment, then load the rest of the settings
    so warnings about bad values reach the configured handlers.
    """
    load_dotenv(env_file)
    setup_logging(_env("LOG_LEVEL", "INFO"), _env("LOG_FILE"))
    return load_settings(env_file)
