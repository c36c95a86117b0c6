"""
Bike photo metadata model.

A BikePhoto is the sidecar record stored next to a pending image. The JSON
field names are the ones the upload form uses, so existing sidecars in the
bucket stay readable.
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlsplit

from ..errors import DecodeError, ValidationError

# Form field name -> attribute name. Anything else in a submission is ignored.
FORM_FIELDS = {
    "Copyright": "copyright",
    "Bike": "bike",
    "Colors": "colors",
    "SRC": "src",
}

_COLOR_TOKEN = re.compile(r"[^\W_]+")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _truncate_to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


@dataclass(frozen=True)
class BikePhoto:
    """
    Metadata for one submitted bike photo.

    Attributes:
        copyright: Attribution text (required)
        bike: Free-text bike model, e.g. "Fr8"
        colors: Free-text list of color names (required)
        src: Link to the original source of the photo
        image: Stored image filename relative to the pending/published prefix
        submitted_at: UTC time of submission
    """

    copyright: str
    colors: str
    bike: str = ""
    src: str = ""
    image: str = ""
    submitted_at: datetime | None = None

    @classmethod
    def from_form(cls, fields: Mapping[str, Any]) -> "BikePhoto":
        """Build a record from submitted form fields, ignoring unknown names."""
        values = {}
        for form_name, attr in FORM_FIELDS.items():
            value = fields.get(form_name)
            values[attr] = str(value).strip() if value is not None else ""
        return cls(**values)

    def validate(self) -> None:
        """
        Check required fields and the source link.

        Raises:
            ValidationError: On the first failing field
        """
        if not self.copyright.strip():
            raise ValidationError("Copyright missing", code="copyright_missing")
        if not self.colors.strip():
            raise ValidationError("Colors missing", code="colors_missing")
        if self.src.strip() and not is_valid_url(self.src.strip()):
            raise ValidationError("invalid URL", code="invalid_url", details={"src": self.src})

    @property
    def color_tokens(self) -> list[str]:
        """Colors split on any non-alphanumeric character."""
        return _COLOR_TOKEN.findall(self.colors)

    @property
    def stem(self) -> str:
        """Image filename without its extension (the submission identifier)."""
        return PurePosixPath(self.image).stem

    def stamped(self, image: str, submitted_at: datetime | None = None) -> "BikePhoto":
        """Return a copy bound to a stored image and submission time."""
        return replace(self, image=image, submitted_at=submitted_at or datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to the sidecar dictionary.

        Returns:
            Dictionary with the submission time truncated to the minute
        """
        return {
            "Copyright": self.copyright,
            "Bike": self.bike,
            "Colors": self.colors,
            "SRC": self.src,
            "ImageURL": self.image,
            "Time": _truncate_to_minute(self.submitted_at).isoformat() if self.submitted_at else None,
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BikePhoto":
        """
        Create a record from a sidecar dictionary.

        Raises:
            DecodeError: If a required key is missing, a field has the wrong
                type, or the time is malformed
        """
        for name in ("Copyright", "Colors", "ImageURL"):
            if name not in data:
                raise DecodeError(f"invalid photo metadata: missing {name}")
            if not isinstance(data[name], str):
                raise DecodeError(f"invalid photo metadata: {name} must be a string")
        for name in ("Bike", "SRC", "Time"):
            if data.get(name) is not None and not isinstance(data[name], str):
                raise DecodeError(f"invalid photo metadata: {name} must be a string or null")

        submitted_at = None
        if data.get("Time"):
            try:
                submitted_at = datetime.fromisoformat(data["Time"].replace("Z", "+00:00"))
            except ValueError as e:
                raise DecodeError(f"invalid photo metadata: {e}", original_exception=e) from e
            if submitted_at.tzinfo is None:
                submitted_at = submitted_at.replace(tzinfo=UTC)

        return cls(
            copyright=data["Copyright"],
            colors=data["Colors"],
            bike=data.get("Bike") or "",
            src=data.get("SRC") or "",
            image=data["ImageURL"],
            submitted_at=submitted_at,
        )

    @classmethod
    def from_json(cls, raw: bytes | str, key: str | None = None) -> "BikePhoto":
        """Decode a sidecar object, raising DecodeError on malformed content."""
        try:
            data = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodeError(f"malformed JSON in {key or 'sidecar'}: {e}", key=key, original_exception=e) from e
        if not isinstance(data, dict):
            raise DecodeError(f"expected JSON object in {key or 'sidecar'}", key=key)
        return cls.from_dict(data)

    def to_gallery_entry(self) -> dict[str, Any]:
        """Entry for the published gallery data, shown to the operator on review."""
        return {
            "photo": {
                "copyright": self.copyright,
                "bike": self.bike,
                "src": self.src,
                "added": _truncate_to_minute(self.submitted_at).isoformat() if self.submitted_at else None,
                "image": f"images/{self.image}",
                "color": self.color_tokens,
            }
        }


def is_valid_url(value: str) -> bool:
    """
    Check that a link parses as a URL reference.

    Relative references and non-http schemes are accepted (e.g.
    "www.flickr.com/photos/1" or "mailto:..."); what fails is text that cannot
    be parsed at all: control characters, broken percent escapes, an empty
    scheme, a colon in the first segment of a scheme-less path, or a malformed
    host or port.
    """
    if any(ord(c) < 32 or ord(c) == 127 for c in value):
        return False
    if value.startswith(":") or _BAD_ESCAPE.search(value):
        return False
    try:
        parts = urlsplit(value)
        parts.port  # raises ValueError for a non-numeric or out-of-range port
    except ValueError:
        return False
    if not parts.scheme and ":" in parts.path.split("/", 1)[0]:
        return False
    if " " in parts.netloc:
        return False
    return True
