import pytest

from rider_photos.core.exceptions import (
    ConfigurationError,
    FaceAlreadyExistsError,
    FetchError,
    FileTooLargeError,
    ImageProcessingError,
    InvalidFormatError,
    PhotoDoesNotMeetRequirementError,
    PhotoRejectedError,
    RiderPhotosError,
    S3Error,
    TooLargeError,
    UnsupportedTypeError,
    UploadError,
    UserAlreadyExistsError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error_cls",
    [
        ConfigurationError,
        ValidationError,
        FetchError,
        FileTooLargeError,
        UploadError,
        TooLargeError,
        InvalidFormatError,
        UnsupportedTypeError,
        PhotoDoesNotMeetRequirementError,
        FaceAlreadyExistsError,
        UserAlreadyExistsError,
    ],
)
def test_kind_is_class_name(error_cls) -> None:
    assert error_cls.kind == error_cls.__name__
    assert error_cls("boom").kind == error_cls.__name__


def test_hierarchy() -> None:
    assert issubclass(FileTooLargeError, FetchError)
    assert issubclass(FetchError, S3Error)
    assert issubclass(UploadError, S3Error)
    assert issubclass(UnsupportedTypeError, ImageProcessingError)
    assert issubclass(FaceAlreadyExistsError, PhotoRejectedError)
    assert issubclass(PhotoRejectedError, RiderPhotosError)
    assert not issubclass(FetchError, PhotoRejectedError)


def test_face_already_exists_default_message() -> None:
    assert str(FaceAlreadyExistsError()) == "Face in the picture is already in the system."
