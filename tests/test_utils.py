"""Tests for upload validation, request validation, error sanitizing and the identification cache."""

import base64
from io import BytesIO
import pytest
from PIL import Image
from werkzeug.datastructures import FileStorage
from leafy.utils import cache
from leafy.utils.errors import GENERIC_MESSAGES, sanitize_error
from leafy.utils.file_upload import allowed_file, create_image_versions, validate_upload_file
from leafy.utils.validation import (
    is_valid_entry_id,
    is_valid_uuid,
    sanitize_message,
    validate_reminder_request,
)


def _image_bytes(size=(2000, 1000), fmt="PNG", mode="RGB"):
    buf = BytesIO()
    Image.new(mode, size).save(buf, format=fmt)
    return buf.getvalue()


@pytest.mark.parametrize("filename, ok", [
    ("fern.jpg", True), ("FERN.WEBP", True), ("photo.php.jpg", False),
    ("../../etc/passwd.png", False), ("notes.txt", False), ("noext", False), ("", False),
])
def test_allowed_file(filename, ok):
    assert allowed_file(filename) is ok


class TestValidateUploadFile:
    def test_valid(self):
        data = _image_bytes((10, 10))
        ok, error, file_bytes = validate_upload_file(FileStorage(BytesIO(data), filename="a.png"))
        assert ok and error is None and file_bytes == data

    def test_too_large(self):
        ok, error, _ = validate_upload_file(FileStorage(BytesIO(_image_bytes((10, 10))), filename="a.png"), max_size=10)
        assert not ok
        assert "less than" in error

    def test_no_file(self):
        ok, error, _ = validate_upload_file(None)
        assert not ok and error


def test_image_versions_are_bounded_jpegs():
    versions = create_image_versions(_image_bytes(mode="RGBA"))
    model = Image.open(BytesIO(base64.b64decode(versions["model"])))
    thumb = Image.open(BytesIO(base64.b64decode(versions["thumbnail"])))
    assert model.format == "JPEG" and max(model.size) == 1536
    assert thumb.format == "JPEG" and max(thumb.size) == 256


def test_image_versions_bad_bytes():
    assert create_image_versions(b"nope") is None


class TestValidation:
    def test_ids(self):
        assert is_valid_uuid("550e8400-e29b-41d4-a716-446655440000")
        assert not is_valid_uuid("550e8400")
        assert is_valid_entry_id("k2x9a7b1c")
        assert not is_valid_entry_id("a/b")
        assert not is_valid_entry_id(None)

    def test_sanitize_message(self):
        assert sanitize_message("  hi\x00 there\t\tfriend ") == "hi there friend"
        assert len(sanitize_message("x" * 5000)) == 2000
        assert sanitize_message(None) == ""

    def test_reminder_request(self):
        payload, error = validate_reminder_request({"plant_id": "abc", "type": " Water ", "interval_days": "5"})
        assert error is None
        assert payload == {"plant_id": "abc", "type": "water", "interval_days": 5}

        payload, error = validate_reminder_request({"plant_id": "abc", "type": "water"})
        assert payload["interval_days"] is None

    @pytest.mark.parametrize("body", [
        None, [], {"type": "water"}, {"plant_id": "abc", "type": "mist"},
        {"plant_id": "abc", "type": "water", "interval_days": True},
        {"plant_id": "abc", "type": "water", "interval_days": 400},
        {"plant_id": "abc", "type": "water", "interval_days": 2.9},
        {"plant_id": "abc", "type": "water", "interval_days": "2.5"},
        {"plant_id": "abc", "type": 5},
    ])
    def test_reminder_request_errors(self, body):
        payload, error = validate_reminder_request(body)
        assert payload == {} and error


def test_sanitize_error_hides_details(app):
    with app.app_context():
        message = sanitize_error(RuntimeError("key sk-123 invalid"), "identification", "Identify")
    assert message == GENERIC_MESSAGES["identification"]
    with app.app_context():
        assert sanitize_error("x", "unknown-kind") == GENERIC_MESSAGES["network"]


class TestIdentificationCache:
    def test_only_successes_cached(self):
        calls = []

        @cache.cache_identification
        def identify(image_b64, mime_type="image/jpeg"):
            calls.append(image_b64)
            if image_b64 == "bad":
                return None, "failed"
            return {"common_name": "Fern"}, None

        assert identify("good") == ({"common_name": "Fern"}, None)
        assert identify("good") == ({"common_name": "Fern"}, None)
        identify("bad")
        identify("bad")
        assert calls == ["good", "bad", "bad"]

        cache.clear_identification_cache()
        identify("good")
        assert calls[-1] == "good"
