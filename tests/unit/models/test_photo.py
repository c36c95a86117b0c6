"""
Unit tests for BikePhoto model.
"""

import json
from datetime import UTC, datetime

import pytest

from bikecolors.errors import DecodeError, ValidationError
from bikecolors.models.photo import BikePhoto, is_valid_url


class TestBikePhotoForm:
    """Building and validating records from form fields."""

    def test_from_form_maps_known_fields(self):
        photo = BikePhoto.from_form(
            {"Copyright": " Jane Doe ", "Bike": "Fr8", "Colors": "red, blue", "SRC": "https://example.com/p"}
        )

        assert photo.copyright == "Jane Doe"
        assert photo.bike == "Fr8"
        assert photo.colors == "red, blue"
        assert photo.src == "https://example.com/p"
        assert photo.image == ""
        assert photo.submitted_at is None

    def test_from_form_ignores_unknown_fields(self):
        photo = BikePhoto.from_form({"Copyright": "Jane", "Colors": "red", "ImageURL": "evil.jpg", "extra": "x"})

        assert photo.image == ""
        assert not hasattr(photo, "extra")

    def test_validate_success(self):
        BikePhoto(copyright="Jane Doe", colors="red").validate()

    @pytest.mark.parametrize("value", ["", "   ", "\t\n"])
    def test_validate_copyright_missing(self, value):
        with pytest.raises(ValidationError, match="Copyright missing"):
            BikePhoto(copyright=value, colors="red").validate()

    @pytest.mark.parametrize("value", ["", "   "])
    def test_validate_colors_missing(self, value):
        with pytest.raises(ValidationError, match="Colors missing"):
            BikePhoto(copyright="Jane", colors=value).validate()

    def test_validate_copyright_checked_before_colors(self):
        with pytest.raises(ValidationError, match="Copyright missing"):
            BikePhoto(copyright="", colors="").validate()

    @pytest.mark.parametrize(
        "src", ["http://[::1", "http://example.com:port/x", "50%off", "a\x7fb", "://example.com", "1a:b", "http://exa mple.com"]
    )
    def test_validate_invalid_url(self, src):
        with pytest.raises(ValidationError, match="invalid URL") as exc_info:
            BikePhoto(copyright="Jane", colors="red", src=src).validate()

        assert exc_info.value.status_code == 400

    def test_validate_blank_url_is_allowed(self):
        BikePhoto(copyright="Jane", colors="red", src="   ").validate()

    @pytest.mark.parametrize(
        "src",
        [
            "https://www.flickr.com/photos/123",
            "www.flickr.com/photos/jane/123",
            "mailto:jane@example.com",
            "ftp://example.com/x",
            "/relative/path?q=1",
            "https://example.com/a%20b",
        ],
    )
    def test_validate_accepts_parseable_links(self, src):
        BikePhoto(copyright="Jane", colors="red", src=src).validate()

    def test_is_valid_url(self):
        assert is_valid_url("http://example.com:8080/x")
        assert is_valid_url("example.com/photo")
        assert not is_valid_url("http://[::1")
        assert not is_valid_url("http://example.com:99999")
        assert not is_valid_url("bad\nlink")


class TestBikePhotoColors:
    """Color token normalization."""

    def test_comma_separated(self):
        assert BikePhoto(copyright="J", colors="red, blue").color_tokens == ["red", "blue"]

    def test_any_non_alphanumeric_separator(self):
        photo = BikePhoto(copyright="J", colors="red/blue;green  yellow_orange-pink")

        assert photo.color_tokens == ["red", "blue", "green", "yellow", "orange", "pink"]

    def test_unicode_letters_and_digits_kept(self):
        assert BikePhoto(copyright="J", colors="grün, rouge2").color_tokens == ["grün", "rouge2"]

    def test_only_separators(self):
        assert BikePhoto(copyright="J", colors=" , ; ").color_tokens == []


class TestBikePhotoSerialization:
    """Sidecar encoding and decoding."""

    def test_to_dict_truncates_time_to_minute(self):
        photo = BikePhoto(copyright="J", colors="red").stamped(
            "abc.jpg", datetime(2024, 5, 17, 14, 32, 45, 999, tzinfo=UTC)
        )

        data = photo.to_dict()

        assert data["Time"] == "2024-05-17T14:32:00+00:00"
        assert data["ImageURL"] == "abc.jpg"
        assert set(data) == {"Copyright", "Bike", "Colors", "SRC", "ImageURL", "Time"}

    def test_json_round_trip(self):
        original = BikePhoto(copyright="Jane Doe", colors="red, blue", bike="Kr8", src="https://example.com").stamped(
            "abc.png", datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        )

        decoded = BikePhoto.from_json(original.to_json())

        assert decoded.copyright == original.copyright
        assert set(decoded.color_tokens) == {"red", "blue"}
        assert decoded.image == original.image
        assert decoded.bike == "Kr8"
        assert decoded.submitted_at == datetime(2024, 1, 2, 3, 4, tzinfo=UTC)

    def test_from_json_accepts_zulu_time(self):
        raw = json.dumps(
            {"Copyright": "J", "Bike": "", "Colors": "red", "SRC": "", "ImageURL": "a.jpg", "Time": "2023-03-01T10:20:30Z"}
        )

        photo = BikePhoto.from_json(raw)

        assert photo.submitted_at == datetime(2023, 3, 1, 10, 20, 30, tzinfo=UTC)

    def test_from_json_malformed(self):
        with pytest.raises(DecodeError):
            BikePhoto.from_json(b"{not json", key="uploaded/x.json")

    def test_from_json_not_an_object(self):
        with pytest.raises(DecodeError):
            BikePhoto.from_json(b"[1, 2]")

    def test_from_json_missing_required_key(self):
        with pytest.raises(DecodeError):
            BikePhoto.from_json(json.dumps({"Copyright": "J", "Colors": "red"}))

    def test_from_json_bad_time(self):
        raw = json.dumps({"Copyright": "J", "Colors": "red", "ImageURL": "a.jpg", "Time": "yesterday"})

        with pytest.raises(DecodeError):
            BikePhoto.from_json(raw)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"Colors": None},
            {"Copyright": 42},
            {"ImageURL": ["a.jpg"]},
            {"Bike": 7},
            {"SRC": {"href": "x"}},
            {"Time": 5},
        ],
    )
    def test_from_json_wrong_field_types(self, overrides):
        data = {"Copyright": "J", "Bike": "", "Colors": "red", "SRC": "", "ImageURL": "a.jpg", "Time": None}
        data.update(overrides)

        with pytest.raises(DecodeError):
            BikePhoto.from_json(json.dumps(data), key="uploaded/a.json")

    def test_from_json_optional_fields_may_be_null(self):
        raw = json.dumps({"Copyright": "J", "Bike": None, "Colors": "red", "SRC": None, "ImageURL": "a.jpg", "Time": None})

        photo = BikePhoto.from_json(raw)

        assert photo.bike == ""
        assert photo.src == ""
        assert photo.submitted_at is None

    def test_stem(self):
        assert BikePhoto(copyright="J", colors="r", image="1234-abcd.jpg").stem == "1234-abcd"
        assert BikePhoto(copyright="J", colors="r", image="1234-abcd").stem == "1234-abcd"

    def test_gallery_entry(self):
        photo = BikePhoto(copyright="Jane", colors="red blue", bike="Fr8").stamped(
            "abc.jpg", datetime(2024, 5, 17, 14, 32, 45, tzinfo=UTC)
        )

        entry = photo.to_gallery_entry()["photo"]

        assert entry["image"] == "images/abc.jpg"
        assert entry["color"] == ["red", "blue"]
        assert entry["added"] == "2024-05-17T14:32:00+00:00"
        assert entry["bike"] == "Fr8"
