"""Unit tests for validate_request."""

import pytest

from rider_photos.core.exceptions import ValidationError
from rider_photos.core.models import IngestRequest, ThumbnailConfig
from rider_photos.core.services import validate_request

CONFIG = ThumbnailConfig(destination_bucket="thumbs")


def _request(**overrides):
    event = {"s3Bucket": "src", "s3Key": "photos/a.png", "userId": "u1"}
    event.update(overrides)
    return IngestRequest.model_validate(event)


def test_valid_request_passes():
    assert validate_request(_request(), CONFIG) is None


@pytest.mark.parametrize(
    "overrides",
    [{"s3Bucket": None}, {"s3Key": None}, {"s3Bucket": ""}, {"s3Key": ""}],
)
def test_missing_required_parameters(overrides):
    with pytest.raises(ValidationError, match="Missing required parameters"):
        validate_request(_request(**overrides), CONFIG)


def test_destination_bucket_must_be_configured():
    with pytest.raises(ValidationError, match="Destination bucket not configured"):
        validate_request(_request(), ThumbnailConfig())


@pytest.mark.parametrize(
    "key",
    ["photos/a b.png", "photos/a%20b.png", "photos/a+b.png", "photos/café.png", "a;rm -rf", "a\\b.png"],
)
def test_disallowed_characters(key):
    with pytest.raises(ValidationError, match="Invalid characters in S3 key"):
        validate_request(_request(s3Key=key), CONFIG)


@pytest.mark.parametrize("key", ["photos/my+photo.jpg", "photos/a,b.png"])
def test_plus_encoded_keys_rejected_before_decoding(key):
    with pytest.raises(ValidationError, match="Invalid characters in S3 key"):
        validate_request(_request(s3Key=key), CONFIG)


@pytest.mark.parametrize("key", ["../../etc/passwd", "photos/../secret.png", "photos/a..png"])
def test_path_traversal(key):
    with pytest.raises(ValidationError, match="Path traversal detected"):
        validate_request(_request(s3Key=key), CONFIG)


def test_key_length_limit():
    validate_request(_request(s3Key="a" * 1024), CONFIG)
    with pytest.raises(ValidationError, match="S3 key exceeds maximum length"):
        validate_request(_request(s3Key="a" * 1025), CONFIG)


@pytest.mark.parametrize(
    "key",
    ["photos/a.png", "Photo_1-(copy).JPG", "a!b*c'd.gif", "deep/nested/path/x.jpeg"],
)
def test_allowed_characters(key):
    validate_request(_request(s3Key=key), CONFIG)


def test_checks_run_in_order():
    # Missing bucket wins over the unconfigured destination.
    with pytest.raises(ValidationError, match="Missing required parameters"):
        validate_request(_request(s3Bucket=None), ThumbnailConfig())
    # Character class is checked before traversal.
    with pytest.raises(ValidationError, match="Invalid characters"):
        validate_request(_request(s3Key="../a b"), CONFIG)


@pytest.mark.parametrize("user_id", [None, "", "../u1", "u1/../../x", "a b", "u1/evil"])
def test_unsafe_user_id(user_id):
    with pytest.raises(ValidationError, match="Invalid user id"):
        validate_request(_request(userId=user_id), CONFIG)


def test_identity_pool_style_user_id_allowed():
    validate_request(_request(userId="us-east-1:6b1f0c2e-8d2a-4c55-9a2f-0e5b1f0c2e8d"), CONFIG)
