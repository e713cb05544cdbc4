"""Face detection, search and indexing stages backed by Amazon Rekognition."""

from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from .error_handling import provider_error_code
from .exceptions import (
    ConfigurationError,
    FaceAlreadyExistsError,
    PhotoDoesNotMeetRequirementError,
)
from .image_utils import decode_source_key
from .models import FaceConfig, FaceRequest, IndexFaceRequest
from .observability import LogContext
from .protocols import LoggerProtocol, RekognitionClientProtocol

# Provider rejections that describe the photo rather than the service.
PHOTO_ERROR_MESSAGES = {
    "ImageTooLargeException": "Image is too large for face detection",
    "InvalidImageFormatException": "Unsupported image file format. Only JPEG or PNG is supported",
}

DROPPED_FACE_FIELDS = ("Landmarks",)


def s3_image(request: FaceRequest) -> Dict[str, Any]:
    """Rekognition ``Image`` parameter for the photo referenced by ``request``."""
    return {
        "S3Object": {
            "Bucket": request.s3_bucket,
            "Name": decode_source_key(request.s3_key),
        }
    }


class FaceDetectionService:
    """Checks that a photo shows exactly one face without sunglasses."""

    def __init__(self, rekognition: RekognitionClientProtocol, logger: LoggerProtocol):
        self._rekognition = rekognition
        self._logger = logger

    def detect(self, request: FaceRequest, context: Optional[LogContext] = None) -> Dict[str, Any]:
        """
        Detect faces in the photo.

        Returns:
            The attributes of the single detected face, without landmarks

        Raises:
            PhotoDoesNotMeetRequirementError: Zero or several faces, sunglasses,
                or a photo Rekognition cannot read
        """
        try:
            response = self._rekognition.detect_faces(Image=s3_image(request), Attributes=["ALL"])
        except ClientError as exc:
            code = provider_error_code(exc)
            if code in PHOTO_ERROR_MESSAGES:
                raise PhotoDoesNotMeetRequirementError(PHOTO_ERROR_MESSAGES[code]) from exc
            raise

        faces = response.get("FaceDetails", [])
        self._logger.info("Face detection finished", context, face_count=len(faces))

        if len(faces) != 1:
            raise PhotoDoesNotMeetRequirementError(f"Detected {len(faces)} faces in the photo.")

        face = faces[0]
        if face.get("Sunglasses", {}).get("Value") is True:
            raise PhotoDoesNotMeetRequirementError("Face is wearing sunglasses")

        return {k: v for k, v in face.items() if k not in DROPPED_FACE_FIELDS}


class FaceSearchService:
    """Rejects photos whose face already exists in the collection."""

    def __init__(
        self,
        rekognition: RekognitionClientProtocol,
        config: FaceConfig,
        logger: LoggerProtocol,
    ):
        self._rekognition = rekognition
        self._config = config
        self._logger = logger

    def search(self, request: FaceRequest, context: Optional[LogContext] = None) -> None:
        """
        Search the collection for the face in the photo.

        Raises:
            ConfigurationError: No collection configured
            FaceAlreadyExistsError: Any match at or above the threshold
        """
        if not self._config.collection_id:
            raise ConfigurationError("Face collection not configured")

        response = self._rekognition.search_faces_by_image(
            CollectionId=self._config.collection_id,
            Image=s3_image(request),
            FaceMatchThreshold=self._config.match_threshold,
            MaxFaces=self._config.max_matches,
        )

        matches = response.get("FaceMatches", [])
        self._logger.info("Face search finished", context, match_count=len(matches))

        if matches:
            raise FaceAlreadyExistsError()


class FaceIndexService:
    """Adds a rider's face to the collection under their user id."""

    def __init__(
        self,
        rekognition: RekognitionClientProtocol,
        config: FaceConfig,
        logger: LoggerProtocol,
    ):
        self._rekognition = rekognition
        self._config = config
        self._logger = logger

    def index(self, request: IndexFaceRequest, context: Optional[LogContext] = None) -> Dict[str, Any]:
        """
        Index the face and return its face record (``FaceId``, ``ImageId``, ...).

        Raises:
            ConfigurationError: No collection configured
            PhotoDoesNotMeetRequirementError: Rekognition indexed no face
        """
        if not self._config.collection_id:
            raise ConfigurationError("Face collection not configured")

        response = self._rekognition.index_faces(
            CollectionId=self._config.collection_id,
            DetectionAttributes=[],
            ExternalImageId=request.user_id,
            Image=s3_image(request),
        )

        records = response.get("FaceRecords", [])
        if not records:
            raise PhotoDoesNotMeetRequirementError("No face could be indexed from the photo.")

        face = records[0]["Face"]
        self._logger.info("Indexed face", context, face_id=face.get("FaceId"))
        return face
