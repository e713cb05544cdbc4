"""Protocol definitions for dependency injection and testability."""

from typing import Any, Dict, Optional, Protocol


class StreamingBodyProtocol(Protocol):
    """Protocol for the streamed payload of an S3 GetObject response."""

    async def read(self, amt: Optional[int] = None) -> bytes:
        """Read at most ``amt`` bytes; an empty result marks end of stream."""
        ...

    def close(self) -> None:
        """Release the underlying connection."""
        ...


class AsyncS3ClientProtocol(Protocol):
    """Protocol for the asynchronous S3 operations used by the thumbnail stage."""

    async def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    async def put_object(self, **kwargs: Any) -> Dict[str, Any]:
        """Put object to S3."""
        ...


class RekognitionClientProtocol(Protocol):
    """Protocol for the Rekognition operations used by the face stages."""

    def detect_faces(self, **kwargs: Any) -> Dict[str, Any]:
        ...

    def search_faces_by_image(self, **kwargs: Any) -> Dict[str, Any]:
        ...

    def index_faces(self, **kwargs: Any) -> Dict[str, Any]:
        ...


class TableProtocol(Protocol):
    """Protocol for a DynamoDB table resource."""

    def put_item(self, **kwargs: Any) -> Dict[str, Any]:
        """Write one item."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, exc_info: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...
