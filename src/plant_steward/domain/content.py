"""Content store models and error types."""

from dataclasses import dataclass

ContentId = int | str

MAINTENANCE_MESSAGE = (
    "The service is temporarily undergoing maintenance. "
    "Please try again later. We apologize for the inconvenience."
)


@dataclass(frozen=True)
class ContentUser:
    """User account held by the content store."""

    id: ContentId
    username: str | None
    phone_number: str | None


@dataclass(frozen=True)
class UploadedFile:
    """File stored in the content store's media library."""

    file_id: ContentId
    file_url: str | None


class ContentStoreError(Exception):
    """The content store answered, but not with what we needed."""


class ContentStoreUnavailable(ContentStoreError):
    """The content store could not be reached."""

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(MAINTENANCE_MESSAGE)
        self.detail = detail
