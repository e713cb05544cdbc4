"""Shared data models for the rider photos pipeline."""

import os
from typing import Any, Dict, FrozenSet, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

MAX_DIMENSION_CEILING = 2000
MAX_QUALITY = 100
MAX_FILE_SIZE = 15 * 1024 * 1024
ALLOWED_MIME_TYPES: FrozenSet[str] = frozenset({"image/jpeg", "image/png", "image/gif"})

_DEFAULTS = {"max_width": 250, "max_height": 250, "quality": 80}
_CEILINGS = {"max_width": MAX_DIMENSION_CEILING, "max_height": MAX_DIMENSION_CEILING, "quality": MAX_QUALITY}

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _positive_int(raw: Any, default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class ThumbnailConfig(BaseModel):
    """Configuration for the thumbnail stage, resolved once per process."""

    model_config = ConfigDict(frozen=True)

    max_width: int = _DEFAULTS["max_width"]
    max_height: int = _DEFAULTS["max_height"]
    quality: int = _DEFAULTS["quality"]
    destination_bucket: Optional[str] = None
    max_file_size: int = MAX_FILE_SIZE
    allowed_mime_types: FrozenSet[str] = ALLOWED_MIME_TYPES

    @field_validator("max_width", "max_height", "quality", mode="before")
    @classmethod
    def _clamp(cls, value: Any, info: ValidationInfo) -> int:
        # Ceilings apply whatever the deployment supplies.
        name = info.field_name
        return min(_positive_int(value, _DEFAULTS[name]), _CEILINGS[name])

    @field_validator("destination_bucket", mode="before")
    @classmethod
    def _blank_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ThumbnailConfig":
        """Build the configuration from MAX_WIDTH, MAX_HEIGHT, IMAGE_QUALITY and THUMBNAIL_BUCKET."""
        env = os.environ if environ is None else environ
        return cls(
            max_width=env.get("MAX_WIDTH"),
            max_height=env.get("MAX_HEIGHT"),
            quality=env.get("IMAGE_QUALITY"),
            destination_bucket=env.get("THUMBNAIL_BUCKET"),
        )


class FaceConfig(BaseModel):
    """Configuration shared by the face detection, search and index stages."""

    model_config = ConfigDict(frozen=True)

    collection_id: Optional[str] = None
    match_threshold: float = 95.0
    max_matches: int = 3

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FaceConfig":
        env = os.environ if environ is None else environ
        return cls(collection_id=env.get("REKOGNITION_COLLECTION_ID") or None)


class PersistenceConfig(BaseModel):
    """Configuration for the metadata persistence stage."""

    model_config = ConfigDict(frozen=True)

    table_name: Optional[str] = None
    allow_overwrite: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PersistenceConfig":
        env = os.environ if environ is None else environ
        raw_overwrite = env.get("ALLOW_USER_OVERWRITE")
        allow_overwrite = True if raw_overwrite is None else raw_overwrite.strip().lower() in _TRUE_VALUES
        return cls(
            table_name=env.get("RIDER_PHOTOS_DDB_TABLE") or None,
            allow_overwrite=allow_overwrite,
        )


class IngestRequest(BaseModel):
    """Thumbnail stage input as sent by the orchestrator."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    source_bucket: Optional[str] = Field(default=None, alias="s3Bucket")
    source_key: Optional[str] = Field(default=None, alias="s3Key")
    user_id: Optional[str] = Field(default=None, alias="userId")


class FetchedImage(BaseModel):
    """Source bytes together with the content type the store declared."""

    data: bytes
    declared_mime_type: str


class TransformedImage(BaseModel):
    """Re-encoded thumbnail bytes and their final dimensions."""

    data: bytes
    mime_type: str
    width: int
    height: int


class ThumbnailRecord(BaseModel):
    """Durable reference to a published thumbnail."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    s3key: str
    s3bucket: str
    content_type: str = Field(alias="contentType")


class ErrorDetail(BaseModel):
    """Sanitized error description exposed to callers."""

    message: str
    type: str


class ResultEnvelope(BaseModel):
    """Uniform response of the thumbnail stage."""

    model_config = ConfigDict(populate_by_name=True)

    status_code: Literal[200, 500] = Field(alias="statusCode")
    thumbnail: Optional[ThumbnailRecord] = None
    error: Optional[ErrorDetail] = None

    @model_validator(mode="after")
    def _one_of_thumbnail_or_error(self) -> "ResultEnvelope":
        if self.status_code == 200 and (self.thumbnail is None or self.error is not None):
            raise ValueError("a 200 envelope carries a thumbnail and no error")
        if self.status_code == 500 and (self.error is None or self.thumbnail is not None):
            raise ValueError("a 500 envelope carries an error and no thumbnail")
        return self

    def to_response(self) -> Dict[str, Any]:
        """Serialize to the JSON shape returned to the orchestrator."""
        return self.model_dump(by_alias=True, exclude_none=True)


class FaceRequest(BaseModel):
    """Input of the face detection and face search stages."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    s3_bucket: str = Field(alias="s3Bucket", min_length=1)
    s3_key: str = Field(alias="s3Key", min_length=1)


class IndexFaceRequest(FaceRequest):
    """Input of the face index stage."""

    user_id: str = Field(alias="userId", min_length=1)


class PersistRequest(BaseModel):
    """Input of the metadata persistence stage, including the fan-in results."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(alias="userId", min_length=1)
    s3_key: str = Field(alias="s3Key")
    s3_bucket: str = Field(alias="s3Bucket")
    parallel_result: List[Dict[str, Any]] = Field(alias="parallelResult", min_length=2)


class UserRecord(BaseModel):
    """Item written to the rider photos table."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    s3key: str
    s3bucket: str
    face_id: str = Field(alias="faceId")
    thumbnail: Optional[Dict[str, Any]] = None

    def to_item(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class StageResult(BaseModel):
    """Tagged result of a collaborator stage.

    ``status`` is "ok" with a ``payload`` or "rejected" with an ``error``;
    the orchestrator branches on ``status`` and ``kind``.
    """

    status: Literal["ok", "rejected"]
    kind: str
    payload: Optional[Dict[str, Any]] = None
    error: Optional[ErrorDetail] = None

    @classmethod
    def ok(cls, kind: str, payload: Optional[Dict[str, Any]] = None) -> "StageResult":
        return cls(status="ok", kind=kind, payload=payload or {})

    @classmethod
    def rejected(cls, kind: str, message: str) -> "StageResult":
        return cls(status="rejected", kind=kind, error=ErrorDetail(message=message, type=kind))

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
