"""Error types raised by the ingestion pipeline"""

from typing import Optional


class MediaVaultError(RuntimeError):
    """Base error; keeps the error it wraps and mentions it in the message"""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        if original is not None and str(original):
            message = f"{message} ({original})"
        super().__init__(message)
        self.original = original


class ProbeError(MediaVaultError):
    """ffprobe execution or output parsing problem"""


class ToolkitError(MediaVaultError):
    """ffmpeg/ffprobe exited with a non-zero status"""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class TranscodeError(MediaVaultError):
    pass


class ThumbnailError(MediaVaultError):
    pass


class MetadataLookupError(MediaVaultError):
    """TMDB request failed or returned something unusable"""


class ImageConfigError(MetadataLookupError):
    """Unknown image type or unsupported size for the TMDB configuration"""


class IndexingError(MediaVaultError):
    pass
