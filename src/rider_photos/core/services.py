"""Thumbnail stage services: validation, bounded fetch, transform and publish."""

import inspect
import io
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from PIL import Image
from pydantic import ValidationError as PydanticValidationError

from .error_handling import (
    error_envelope,
    is_development,
    sanitize_error,
    sanitize_log_data,
    translate_errors,
)
from .exceptions import (
    FetchError,
    FileTooLargeError,
    InvalidFormatError,
    TooLargeError,
    UnsupportedTypeError,
    UploadError,
    ValidationError,
)
from .image_utils import (
    KEY_PATTERN,
    MAX_KEY_LENGTH,
    PATH_TRAVERSAL_TOKEN,
    USER_ID_PATTERN,
    clamp_dimensions,
    compute_target_size,
    decode_source_key,
    generate_secure_filename,
    needs_resize,
)
from .models import (
    FetchedImage,
    IngestRequest,
    ResultEnvelope,
    ThumbnailConfig,
    ThumbnailRecord,
    TransformedImage,
)
from .observability import LogContext, new_log_context
from .protocols import AsyncS3ClientProtocol, LoggerProtocol, StreamingBodyProtocol

DEFAULT_CHUNK_SIZE = 64 * 1024

CACHE_CONTROL = "public, max-age=31536000"
CONTENT_DISPOSITION = "inline"
CONTENT_SECURITY_POLICY = "default-src 'none'; img-src 'self'"

# Pillow reports multi-picture JPEGs from phone cameras as MPO.
FORMAT_ALIASES = {"MPO": "JPEG"}


def validate_request(request: IngestRequest, config: ThumbnailConfig) -> None:
    """
    Reject malformed or unsafe thumbnail requests before any I/O.

    Checks run in order and stop at the first failure.

    Raises:
        ValidationError: With the reason for the rejection
    """
    if not request.source_bucket or not request.source_key:
        raise ValidationError("Missing required parameters")

    if not config.destination_bucket:
        raise ValidationError("Destination bucket not configured")

    key = request.source_key
    if not KEY_PATTERN.fullmatch(key):
        raise ValidationError("Invalid characters in S3 key")

    if PATH_TRAVERSAL_TOKEN in key:
        raise ValidationError("Path traversal detected")

    if len(key) > MAX_KEY_LENGTH:
        raise ValidationError("S3 key exceeds maximum length")

    # The user id becomes the first segment of the destination key.
    user_id = request.user_id
    if not user_id or PATH_TRAVERSAL_TOKEN in user_id or not USER_ID_PATTERN.fullmatch(user_id):
        raise ValidationError("Invalid user id")


async def _close_body(body: Any) -> None:
    result = body.close()
    if inspect.isawaitable(result):
        await result


class BoundedReader:
    """Reads a streaming body chunk by chunk and aborts past a byte ceiling."""

    def __init__(
        self,
        body: StreamingBodyProtocol,
        limit: int,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self._body = body
        self._limit = limit
        self._chunk_size = chunk_size
        self.bytes_read = 0

    async def read_all(self) -> bytes:
        """
        Drain the body into memory.

        The running total is checked after every chunk; the body is closed on
        every exit path so an aborted read releases its connection.

        Raises:
            FileTooLargeError: As soon as the running total exceeds the limit
        """
        chunks: List[bytes] = []
        try:
            while True:
                chunk = await self._body.read(self._chunk_size)
                if not chunk:
                    break
                self.bytes_read += len(chunk)
                if self.bytes_read > self._limit:
                    raise FileTooLargeError("File size exceeds maximum limit")
                chunks.append(chunk)
        finally:
            await _close_body(self._body)

        return b"".join(chunks)


class BoundedFetcher:
    """Fetches source images from S3 under content-type and size limits."""

    def __init__(
        self,
        s3_client: AsyncS3ClientProtocol,
        config: ThumbnailConfig,
        logger: LoggerProtocol,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self._s3_client = s3_client
        self._config = config
        self._logger = logger
        self._chunk_size = chunk_size

    async def fetch(
        self, bucket: str, key: str, context: Optional[LogContext] = None
    ) -> FetchedImage:
        """
        Fetch ``bucket``/``key`` where ``key`` is already decoded.

        Raises:
            FetchError: Object missing, store unreachable or content type not allowed
            FileTooLargeError: Declared or streamed size above ``max_file_size``
        """
        message = "Failed to fetch image"

        with translate_errors(FetchError, message, self._logger, context):
            response = await self._s3_client.get_object(Bucket=bucket, Key=key)

        body = response["Body"]
        try:
            content_type = str(response.get("ContentType") or "").split(";")[0].strip().lower()
            if content_type not in self._config.allowed_mime_types:
                self._logger.warning("Rejected content type", context, content_type=content_type or "none")
                raise FetchError("Invalid content type")

            declared_length = response.get("ContentLength")
            if declared_length is not None and int(declared_length) > self._config.max_file_size:
                raise FileTooLargeError("File size exceeds maximum limit")
        except BaseException:
            await _close_body(body)
            raise

        reader = BoundedReader(body, self._config.max_file_size, self._chunk_size)
        with translate_errors(FetchError, message, self._logger, context):
            data = await reader.read_all()

        self._logger.debug("Fetched source image", context, bytes_read=reader.bytes_read)
        return FetchedImage(data=data, declared_mime_type=content_type)


class ImageTransformer:
    """Decodes, verifies, shrinks and re-encodes images with Pillow."""

    def __init__(self, config: ThumbnailConfig):
        self._config = config

    def transform(self, data: bytes) -> TransformedImage:
        """
        Turn source bytes into a thumbnail.

        The decoded format decides the MIME type, not the declared one.

        Raises:
            TooLargeError: Buffer larger than ``max_file_size``
            InvalidFormatError: Bytes cannot be decoded or re-encoded
            UnsupportedTypeError: Decoded format outside the allow-list
        """
        if len(data) > self._config.max_file_size:
            raise TooLargeError("Input file too large")

        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except Exception as exc:  # noqa: BLE001
            raise InvalidFormatError("Invalid image format") from exc

        image_format = FORMAT_ALIASES.get(image.format or "", image.format or "")
        mime_type = Image.MIME.get(image_format.upper())
        if mime_type not in self._config.allowed_mime_types:
            raise UnsupportedTypeError("Unsupported image type")

        source_size = clamp_dimensions(*image.size)
        target_size = compute_target_size(
            image.width, image.height, self._config.max_width, self._config.max_height
        )

        try:
            if needs_resize(source_size, target_size):
                image = image.resize(target_size, Image.Resampling.LANCZOS)

            output = io.BytesIO()
            image.save(output, format=image_format, quality=self._config.quality)
        except Exception as exc:  # noqa: BLE001
            raise InvalidFormatError("Failed to encode image") from exc

        return TransformedImage(
            data=output.getvalue(),
            mime_type=mime_type,
            width=image.width,
            height=image.height,
        )


class ThumbnailPublisher:
    """Writes thumbnails to the destination bucket with security headers."""

    def __init__(self, s3_client: AsyncS3ClientProtocol, logger: LoggerProtocol):
        self._s3_client = s3_client
        self._logger = logger

    async def publish(
        self,
        image: TransformedImage,
        bucket: str,
        user_id: str,
        filename: str,
        original_key: str,
        context: Optional[LogContext] = None,
    ) -> ThumbnailRecord:
        """
        Upload ``image`` under ``{user_id}/{filename}``.

        Raises:
            UploadError: The write failed
        """
        key = f"{user_id}/{filename}"

        with translate_errors(UploadError, "Failed to upload thumbnail", self._logger, context):
            await self._s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=image.data,
                ContentType=image.mime_type,
                CacheControl=CACHE_CONTROL,
                ContentDisposition=CONTENT_DISPOSITION,
                Metadata={
                    "original-key": original_key,
                    "processing-date": datetime.now(timezone.utc).isoformat(),
                    "content-security-policy": CONTENT_SECURITY_POLICY,
                },
            )

        return ThumbnailRecord(s3key=key, s3bucket=bucket, content_type=image.mime_type)


class ThumbnailService:
    """Runs the thumbnail stage and shapes every outcome into a ResultEnvelope."""

    def __init__(
        self,
        config: ThumbnailConfig,
        s3_client: AsyncS3ClientProtocol,
        logger: LoggerProtocol,
        transformer: Optional[ImageTransformer] = None,
        namer: Callable[[str], str] = generate_secure_filename,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self._config = config
        self._logger = logger
        self._fetcher = BoundedFetcher(s3_client, config, logger, chunk_size)
        self._transformer = transformer or ImageTransformer(config)
        self._publisher = ThumbnailPublisher(s3_client, logger)
        self._namer = namer

    async def process(
        self, request: IngestRequest, context: LogContext
    ) -> ThumbnailRecord:
        """Validate, fetch, transform, name and publish; failures propagate."""
        validate_request(request, self._config)

        source_key = decode_source_key(request.source_key)
        context = context.with_metadata(source_bucket=request.source_bucket, source_key=source_key)

        self._logger.debug("Fetching source image", context.with_operation("fetch"))
        fetched = await self._fetcher.fetch(
            request.source_bucket, source_key, context.with_operation("fetch")
        )

        transformed = self._transformer.transform(fetched.data)
        self._logger.debug(
            "Transformed image",
            context.with_operation("transform"),
            mime_type=transformed.mime_type,
            width=transformed.width,
            height=transformed.height,
        )

        filename = self._namer(source_key)

        return await self._publisher.publish(
            transformed,
            self._config.destination_bucket,
            request.user_id,
            filename,
            source_key,
            context.with_operation("publish"),
        )

    async def handle(self, event: Any, request_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Process one invocation event.

        Returns:
            ``{"statusCode": 200, "thumbnail": {...}}`` on success, otherwise
            ``{"statusCode": 500, "error": {"message": "Image processing failed", "type": kind}}``
        """
        context = new_log_context("thumbnail", request_id)
        self._logger.info("Processing event", context, event=sanitize_log_data(event))

        try:
            request = parse_ingest_request(event)
            record = await self.process(request, context)
        except Exception as exc:  # noqa: BLE001
            sanitized = sanitize_error(exc, include_stack=False)
            self._logger.error(
                "Thumbnail generation failed",
                context,
                exc_info=exc if is_development() else None,
                error=sanitized["message"],
                error_type=sanitized["type"],
            )
            return error_envelope(exc)

        self._logger.info("Thumbnail published", context, s3key=record.s3key)
        return ResultEnvelope(status_code=200, thumbnail=record).to_response()


def parse_ingest_request(event: Any) -> IngestRequest:
    """Build an IngestRequest from a raw event; shape errors become ValidationError."""
    if not isinstance(event, dict):
        raise ValidationError("Missing required parameters")
    try:
        return IngestRequest.model_validate(event)
    except PydanticValidationError as exc:
        raise ValidationError("Malformed request") from exc
