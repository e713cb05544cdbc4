"""Core services and shared components for the rider photos pipeline."""

from .exceptions import (
    ConfigurationError,
    FaceAlreadyExistsError,
    FetchError,
    FileTooLargeError,
    ImageProcessingError,
    InvalidFormatError,
    PhotoDoesNotMeetRequirementError,
    PhotoRejectedError,
    RiderPhotosError,
    S3Error,
    TooLargeError,
    UnsupportedTypeError,
    UploadError,
    UserAlreadyExistsError,
    ValidationError,
)
from .image_utils import (
    compute_target_size,
    decode_source_key,
    generate_secure_filename,
)
from .logging_config import get_logger, setup_logger
from .models import (
    FaceConfig,
    IngestRequest,
    PersistenceConfig,
    ResultEnvelope,
    StageResult,
    ThumbnailConfig,
    ThumbnailRecord,
    TransformedImage,
)

__all__ = [
    "ConfigurationError",
    "FaceAlreadyExistsError",
    "FetchError",
    "FileTooLargeError",
    "ImageProcessingError",
    "InvalidFormatError",
    "PhotoDoesNotMeetRequirementError",
    "PhotoRejectedError",
    "RiderPhotosError",
    "S3Error",
    "TooLargeError",
    "UnsupportedTypeError",
    "UploadError",
    "UserAlreadyExistsError",
    "ValidationError",
    "compute_target_size",
    "decode_source_key",
    "generate_secure_filename",
    "get_logger",
    "setup_logger",
    "FaceConfig",
    "IngestRequest",
    "PersistenceConfig",
    "ResultEnvelope",
    "StageResult",
    "ThumbnailConfig",
    "ThumbnailRecord",
    "TransformedImage",
]
