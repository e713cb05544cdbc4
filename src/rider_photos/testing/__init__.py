"""Testing utilities and fakes for the rider photos pipeline."""

from .fakes import (
    FakeAppContext,
    FakeAsyncS3Client,
    FakeLogger,
    FakeRekognitionClient,
    FakeStreamingBody,
    FakeTable,
    S3Bucket,
    S3Object,
    client_error,
    create_test_image,
    make_face_detail,
    setup_test_s3_environment,
)

__all__ = [
    "FakeAppContext",
    "FakeAsyncS3Client",
    "FakeLogger",
    "FakeRekognitionClient",
    "FakeStreamingBody",
    "FakeTable",
    "S3Bucket",
    "S3Object",
    "client_error",
    "create_test_image",
    "make_face_detail",
    "setup_test_s3_environment",
]
