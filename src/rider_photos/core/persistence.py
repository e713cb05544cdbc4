"""Persistence of the rider photo record in DynamoDB."""

from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from .error_handling import provider_error_code
from .exceptions import ConfigurationError, UserAlreadyExistsError, ValidationError
from .models import PersistenceConfig, PersistRequest, UserRecord
from .observability import LogContext
from .protocols import LoggerProtocol, TableProtocol

NO_OVERWRITE_CONDITION = "attribute_not_exists(userId)"


def face_record_from(index_result: Dict[str, Any]) -> Dict[str, Any]:
    """Accept the index stage output either tagged or as the bare face record."""
    if "status" in index_result and "payload" in index_result:
        return index_result.get("payload") or {}
    return index_result


def thumbnail_from(thumbnail_result: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return thumbnail_result.get("thumbnail")


class MetadataPersistenceService:
    """Writes the joined fan-in results as one item keyed by user id."""

    def __init__(self, table: TableProtocol, config: PersistenceConfig, logger: LoggerProtocol):
        self._table = table
        self._config = config
        self._logger = logger

    def build_record(self, request: PersistRequest) -> UserRecord:
        index_result, thumbnail_result = request.parallel_result[0], request.parallel_result[1]

        face_id = face_record_from(index_result).get("FaceId")
        if not face_id:
            raise ValidationError("Index result carries no FaceId")

        return UserRecord(
            user_id=request.user_id,
            s3key=request.s3_key,
            s3bucket=request.s3_bucket,
            face_id=face_id,
            thumbnail=thumbnail_from(thumbnail_result),
        )

    def persist(self, request: PersistRequest, context: Optional[LogContext] = None) -> Dict[str, Any]:
        """
        Write the record for ``request.user_id``.

        Overwrites an existing record unless ``allow_overwrite`` is off.

        Raises:
            ConfigurationError: No table configured
            ValidationError: The index result has no face id
            UserAlreadyExistsError: Record exists and overwrites are disabled
        """
        if not self._config.table_name:
            raise ConfigurationError("Rider photos table not configured")

        item = self.build_record(request).to_item()

        put_kwargs: Dict[str, Any] = {"Item": item}
        if not self._config.allow_overwrite:
            put_kwargs["ConditionExpression"] = NO_OVERWRITE_CONDITION

        try:
            self._table.put_item(**put_kwargs)
        except ClientError as exc:
            if provider_error_code(exc) == "ConditionalCheckFailedException":
                raise UserAlreadyExistsError(f"A record for user {request.user_id} already exists") from exc
            raise

        self._logger.info("Persisted rider photo record", context, user_id=request.user_id)
        return item
