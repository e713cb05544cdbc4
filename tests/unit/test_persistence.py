"""Unit tests for MetadataPersistenceService."""

import pytest

from rider_photos.core.exceptions import ConfigurationError, UserAlreadyExistsError, ValidationError
from rider_photos.core.models import PersistenceConfig, PersistRequest
from rider_photos.core.persistence import MetadataPersistenceService
from rider_photos.testing.fakes import FakeLogger, FakeTable

THUMBNAIL_RESULT = {
    "statusCode": 200,
    "thumbnail": {"s3key": "u1/1-ab.png", "s3bucket": "thumbs", "contentType": "image/png"},
}


def _request(index_result, thumbnail_result=THUMBNAIL_RESULT, user_id="u1"):
    return PersistRequest.model_validate(
        {
            "userId": user_id,
            "s3Key": "photos/a.png",
            "s3Bucket": "src",
            "parallelResult": [index_result, thumbnail_result],
        }
    )


def _service(table=None, **config):
    config.setdefault("table_name", "rider-photos")
    return MetadataPersistenceService(table or FakeTable(), PersistenceConfig(**config), FakeLogger())


class TestMetadataPersistenceService:
    """Tests for MetadataPersistenceService.persist."""

    def test_persists_tagged_index_result(self):
        table = FakeTable()
        index_result = {"status": "ok", "kind": "FaceIndexed", "payload": {"FaceId": "f1"}}

        item = _service(table).persist(_request(index_result))

        assert item == {
            "userId": "u1",
            "s3key": "photos/a.png",
            "s3bucket": "src",
            "faceId": "f1",
            "thumbnail": THUMBNAIL_RESULT["thumbnail"],
        }
        assert table.items["u1"] == item
        assert "ConditionExpression" not in table.calls[0]

    def test_persists_bare_face_record(self):
        item = _service().persist(_request({"FaceId": "f2", "ImageId": "i2"}))
        assert item["faceId"] == "f2"

    def test_failed_thumbnail_leaves_reference_out(self):
        failed = {"statusCode": 500, "error": {"message": "Image processing failed", "type": "FetchError"}}
        item = _service().persist(_request({"FaceId": "f1"}, failed))
        assert "thumbnail" not in item

    def test_overwrites_by_default(self):
        table = FakeTable()
        service = _service(table)

        service.persist(_request({"FaceId": "f1"}))
        service.persist(_request({"FaceId": "f2"}))

        assert table.items["u1"]["faceId"] == "f2"

    def test_overwrite_protection(self):
        table = FakeTable()
        service = _service(table, allow_overwrite=False)

        service.persist(_request({"FaceId": "f1"}))
        with pytest.raises(UserAlreadyExistsError):
            service.persist(_request({"FaceId": "f2"}))

        assert table.calls[0]["ConditionExpression"] == "attribute_not_exists(userId)"
        assert table.items["u1"]["faceId"] == "f1"

    def test_missing_face_id(self):
        with pytest.raises(ValidationError):
            _service().persist(_request({"status": "ok", "kind": "FaceIndexed", "payload": {}}))

    def test_table_required(self):
        service = MetadataPersistenceService(FakeTable(), PersistenceConfig(), FakeLogger())
        with pytest.raises(ConfigurationError):
            service.persist(_request({"FaceId": "f1"}))
