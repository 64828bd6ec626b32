class WallhavenError(Exception):
    """Base class for everything the core raises."""


class NetworkError(WallhavenError):
    """Connection failure, timeout or non-2xx response."""


class ParseError(WallhavenError):
    """The API body is not JSON or lacks the expected fields."""


class DecodeError(WallhavenError):
    """The bytes are not a raster image Pillow can open."""


class IoError(WallhavenError):
    """Writing the downloaded image failed."""


class DownloadError(NetworkError):
    """The full-size image could not be fetched."""
