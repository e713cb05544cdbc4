"""Factories for configured AWS clients and the process-wide application context."""

import functools
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Optional

import aioboto3
import boto3
from botocore.config import Config

from .exceptions import ConfigurationError
from .models import FaceConfig, PersistenceConfig, ThumbnailConfig
from .protocols import AsyncS3ClientProtocol, RekognitionClientProtocol, TableProtocol

MAX_ATTEMPTS = 3
REQUEST_TIMEOUT_SECONDS = 5


def client_config() -> Config:
    """SDK configuration shared by every client: short timeouts, three attempts in total."""
    return Config(
        connect_timeout=REQUEST_TIMEOUT_SECONDS,
        read_timeout=REQUEST_TIMEOUT_SECONDS,
        retries={"total_max_attempts": MAX_ATTEMPTS, "mode": "standard"},
    )


def _refuse_region_redirects(context: Dict[str, Any], **kwargs: Any) -> None:
    # The S3 region redirector skips requests whose redirect state is already set.
    context.setdefault("s3_redirect", {})["redirected"] = True


def disable_region_redirects(client: Any) -> Any:
    """Stop an S3 client from re-sending requests to another region."""
    client.meta.events.register("before-call.s3", _refuse_region_redirects)
    return client


@dataclass
class AppContext:
    """Configuration and SDK sessions shared by all invocations of one process."""

    thumbnail_config: ThumbnailConfig
    face_config: FaceConfig
    persistence_config: PersistenceConfig
    region: Optional[str] = None
    _clients: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_env(cls) -> "AppContext":
        return cls(
            thumbnail_config=ThumbnailConfig.from_env(),
            face_config=FaceConfig.from_env(),
            persistence_config=PersistenceConfig.from_env(),
            region=os.getenv("AWS_REGION") or None,
        )

    @functools.cached_property
    def async_session(self) -> aioboto3.Session:
        return aioboto3.Session(region_name=self.region)

    @asynccontextmanager
    async def s3_client(self) -> AsyncIterator[AsyncS3ClientProtocol]:
        """Open an asynchronous S3 client for one invocation."""
        async with self.async_session.client("s3", config=client_config()) as client:  # type: ignore[reportUnknownMemberType]
            yield disable_region_redirects(client)

    def rekognition_client(self) -> RekognitionClientProtocol:
        if "rekognition" not in self._clients:
            self._clients["rekognition"] = boto3.client(
                "rekognition", region_name=self.region, config=client_config()
            )
        return self._clients["rekognition"]

    def rider_photos_table(self) -> TableProtocol:
        if not self.persistence_config.table_name:
            raise ConfigurationError("Rider photos table not configured")
        if "table" not in self._clients:
            dynamodb = boto3.resource("dynamodb", region_name=self.region, config=client_config())
            self._clients["table"] = dynamodb.Table(self.persistence_config.table_name)
        return self._clients["table"]


@functools.lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Return the application context, building it on first use."""
    return AppContext.from_env()
