"""AWS Lambda entry points, one per pipeline stage."""

import asyncio
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .core.error_handling import error_envelope, sanitize_error, with_error_handling
from .core.exceptions import ValidationError
from .core.factories import AppContext, get_app_context
from .core.faces import FaceDetectionService, FaceIndexService, FaceSearchService
from .core.logging_config import get_logger
from .core.models import FaceRequest, IndexFaceRequest, PersistRequest, StageResult
from .core.observability import StructuredLogger, new_log_context
from .core.persistence import MetadataPersistenceService
from .core.services import ThumbnailService

M = TypeVar("M", bound=BaseModel)


def _request_id(lambda_context: Any) -> Optional[str]:
    return getattr(lambda_context, "aws_request_id", None)


def parse_event(model: Type[M], event: Any) -> M:
    """Validate a raw event against ``model``; shape errors become ValidationError."""
    try:
        return model.model_validate(event)
    except PydanticValidationError as exc:
        raise ValidationError(f"Malformed {model.__name__} event") from exc


async def run_thumbnail(app: AppContext, event: Any, request_id: Optional[str] = None) -> Dict[str, Any]:
    """Run the thumbnail stage with a per-invocation S3 client."""
    async with app.s3_client() as s3_client:
        service = ThumbnailService(app.thumbnail_config, s3_client, StructuredLogger("thumbnail"))
        return await service.handle(event, request_id)


def thumbnail_handler(event: Any, lambda_context: Any = None) -> Dict[str, Any]:
    """Generate a thumbnail; always returns a ResultEnvelope-shaped dict."""
    try:
        return asyncio.run(run_thumbnail(get_app_context(), event, _request_id(lambda_context)))
    except Exception as exc:  # noqa: BLE001
        get_logger("thumbnail").error(f"Thumbnail stage setup failed: {sanitize_error(exc)}")
        return error_envelope(exc)


@with_error_handling
def face_detection_handler(event: Any, lambda_context: Any = None) -> Dict[str, Any]:
    request = parse_event(FaceRequest, event)
    service = FaceDetectionService(get_app_context().rekognition_client(), StructuredLogger("face-detection"))
    face = service.detect(request, new_log_context("face-detection", _request_id(lambda_context)))
    return StageResult.ok("FaceDetected", face).to_response()


@with_error_handling
def face_search_handler(event: Any, lambda_context: Any = None) -> Dict[str, Any]:
    request = parse_event(FaceRequest, event)
    app = get_app_context()
    service = FaceSearchService(app.rekognition_client(), app.face_config, StructuredLogger("face-search"))
    service.search(request, new_log_context("face-search", _request_id(lambda_context)))
    return StageResult.ok("FaceNotFound").to_response()


@with_error_handling
def index_face_handler(event: Any, lambda_context: Any = None) -> Dict[str, Any]:
    request = parse_event(IndexFaceRequest, event)
    app = get_app_context()
    service = FaceIndexService(app.rekognition_client(), app.face_config, StructuredLogger("index-face"))
    face = service.index(request, new_log_context("index-face", _request_id(lambda_context)))
    return StageResult.ok("FaceIndexed", face).to_response()


@with_error_handling
def persist_metadata_handler(event: Any, lambda_context: Any = None) -> Dict[str, Any]:
    request = parse_event(PersistRequest, event)
    app = get_app_context()
    service = MetadataPersistenceService(
        app.rider_photos_table(), app.persistence_config, StructuredLogger("persist-metadata")
    )
    item = service.persist(request, new_log_context("persist-metadata", _request_id(lambda_context)))
    return StageResult.ok("RecordPersisted", item).to_response()
