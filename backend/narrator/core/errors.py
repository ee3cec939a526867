"""Exception hierarchy shared by the store, the media layer and the pipeline."""

from typing import Optional


class NarratorError(Exception):
    """Base class for every error raised on purpose by this package."""


class NotFoundError(NarratorError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class ItemNotFound(NotFoundError):
    def __init__(self, media_item_id: str):
        super().__init__("Media item", media_item_id)


class DuplicateRecord(NarratorError):
    pass


class NoSourceAvailable(NarratorError):
    def __init__(self, media_item_id: str):
        super().__init__(f"No video source available for media item {media_item_id}")


class UploadRejected(NarratorError):
    pass


class ExternalToolError(NarratorError):
    """A media subprocess exited nonzero, was missing, or produced unusable output."""

    def __init__(self, tool: str, message: str, returncode: Optional[int] = None, stderr: str = ""):
        detail = f"{tool} failed: {message}"
        if stderr:
            detail = f"{detail}: {stderr.strip()[-2000:]}"
        super().__init__(detail)
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr


class ExternalApiError(NarratorError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
