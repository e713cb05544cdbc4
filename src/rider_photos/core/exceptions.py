"""Custom exceptions for the rider photos pipeline."""

from __future__ import annotations


class RiderPhotosError(Exception):
    """Base exception for all rider photos pipeline errors.

    ``kind`` is the stable name reported to callers in place of the message.
    """

    kind = "RiderPhotosError"

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        if "kind" not in cls.__dict__:
            cls.kind = cls.__name__


class ConfigurationError(RiderPhotosError):
    """Error raised for invalid or missing configuration options."""


class ValidationError(RiderPhotosError):
    """Error raised when an incoming event is malformed or unsafe."""


class S3Error(RiderPhotosError):
    """Error raised for S3 related failures."""


class FetchError(S3Error):
    """Error raised when the source object cannot be retrieved."""


class FileTooLargeError(FetchError):
    """Error raised when the source object exceeds the byte ceiling."""


class UploadError(S3Error):
    """Error raised when the thumbnail cannot be written."""


class ImageProcessingError(RiderPhotosError):
    """Error raised when decoding or re-encoding an image fails."""


class TooLargeError(ImageProcessingError):
    """Buffer handed to the transformer exceeds the byte ceiling."""


class InvalidFormatError(ImageProcessingError):
    """Bytes could not be decoded or re-encoded as an image."""


class UnsupportedTypeError(ImageProcessingError):
    """Decoded image format is not in the allow-list."""


class PhotoRejectedError(RiderPhotosError):
    """Business-rule rejection of a photo; never retried."""


class PhotoDoesNotMeetRequirementError(PhotoRejectedError):
    """Photo must contain exactly one face without sunglasses."""


class FaceAlreadyExistsError(PhotoRejectedError):
    """Face in the photo is already indexed in the collection."""

    def __init__(self, message: str = "Face in the picture is already in the system.") -> None:
        super().__init__(message)


class UserAlreadyExistsError(PhotoRejectedError):
    """A record for the user exists and overwrites are disabled."""
