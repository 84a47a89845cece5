from unittest.mock import patch

import pytest
from cloudinary.exceptions import Error as CloudinaryError

from core.exceptions import ValidationError
from services.media_service import MediaService, extract_public_id, discard_media


@pytest.fixture
def staged_file(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"fake-video-bytes")
    return path


class TestExtractPublicId:

    def test_image_url(self):
        url = "https://res.cloudinary.com/demo/image/upload/v1712/abc123.png"

        assert extract_public_id(url, "image") == "abc123"

    def test_video_url(self):
        url = "http://res.cloudinary.com/demo/video/upload/v1712/clip-final.MP4"

        assert extract_public_id(url, "video") == "clip-final"

    @pytest.mark.parametrize("extension", ["mpeg", "mpg", "3gp", "wmv"])
    def test_other_video_sources(self, extension):
        url = f"https://res.cloudinary.com/demo/video/upload/v1/clip.{extension}"

        assert extract_public_id(url, "video") == "clip"

    def test_dots_in_name(self):
        url = "https://res.cloudinary.com/demo/image/upload/v1/my.holiday.photo.jpg"

        assert extract_public_id(url, "image") == "my.holiday.photo"

    def test_missing_extension(self):
        with pytest.raises(ValidationError):
            extract_public_id("https://res.cloudinary.com/demo/image/upload/v1/abc123", "image")

    def test_extension_of_wrong_kind(self):
        with pytest.raises(ValidationError):
            extract_public_id("https://res.cloudinary.com/demo/video/upload/v1/clip.mp4", "image")

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            extract_public_id("https://res.cloudinary.com/demo/raw/upload/v1/doc.pdf", "raw")


class TestUpload:

    def test_success_removes_local_file(self, staged_file):
        result = {
            "secure_url": "https://res.cloudinary.com/demo/video/upload/v1/abc.mp4",
            "resource_type": "video",
            "duration": 12.3,
        }
        with patch("cloudinary.uploader.upload", return_value=result) as upload:
            uploaded = MediaService().upload(str(staged_file))

        upload.assert_called_once_with(str(staged_file), resource_type="auto")
        assert uploaded == {"url": result["secure_url"], "duration": 12.3}
        assert not staged_file.exists()

    def test_image_has_no_duration(self, tmp_path):
        path = tmp_path / "avatar.png"
        path.write_bytes(b"fake-image-bytes")
        result = {"secure_url": "https://res.cloudinary.com/demo/image/upload/v1/a.png"}

        with patch("cloudinary.uploader.upload", return_value=result):
            uploaded = MediaService().upload(str(path))

        assert uploaded["duration"] is None

    def test_failure_returns_none_and_removes_local_file(self, staged_file):
        with patch("cloudinary.uploader.upload", side_effect=CloudinaryError("boom")):
            assert MediaService().upload(str(staged_file)) is None

        assert not staged_file.exists()

    def test_nothing_to_upload(self):
        with patch("cloudinary.uploader.upload") as upload:
            assert MediaService().upload(None) is None

        upload.assert_not_called()


class TestDelete:

    def test_destroys_by_public_id(self):
        with patch("cloudinary.uploader.destroy", return_value={"result": "ok"}) as destroy:
            MediaService().delete("https://res.cloudinary.com/demo/video/upload/v1/abc.mp4", "video")

        destroy.assert_called_once_with("abc", resource_type="video")

    def test_storage_failure_is_not_raised(self):
        with patch("cloudinary.uploader.destroy", side_effect=CloudinaryError("down")):
            MediaService().delete("https://res.cloudinary.com/demo/image/upload/v1/abc.png", "image")

    def test_rejects_mismatched_url_before_calling_storage(self):
        with patch("cloudinary.uploader.destroy") as destroy:
            with pytest.raises(ValidationError):
                MediaService().delete("https://res.cloudinary.com/demo/image/upload/v1/abc.png", "video")

        destroy.assert_not_called()


class TestDiscardMedia:

    def test_delegates_to_delete(self):
        with patch("cloudinary.uploader.destroy", return_value={"result": "ok"}) as destroy:
            discard_media(MediaService(), "https://res.cloudinary.com/demo/video/upload/v1/abc.mpeg", "video")

        destroy.assert_called_once_with("abc", resource_type="video")

    def test_underivable_url_is_skipped(self):
        with patch("cloudinary.uploader.destroy") as destroy:
            discard_media(MediaService(), "https://res.cloudinary.com/demo/video/upload/v1/abc.bin", "video")

        destroy.assert_not_called()
