"""
Response Normalizer — platform app records to one canonical shape.

Maps each platform's app/deployment representation onto CanonicalAppRecord
using declarative field mappings. Platforms without a mapping pass their
raw record through unchanged.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable


# ---------------------------------------------------------------------------
# Canonical schema
# ---------------------------------------------------------------------------

@dataclass
class CanonicalAppRecord:
    """Platform-agnostic app representation."""
    id: str = ""
    name: str = ""
    framework: str = ""
    deployment_url: str | None = None
    last_update: datetime | None = None
    status: str = ""
    source_repository_url: str | None = None
    platform_id: str = ""
    raw_data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "framework": self.framework,
            "deployment_url": self.deployment_url,
            "last_update": self.last_update.isoformat() if self.last_update else None,
            "status": self.status,
            "source_repository_url": self.source_repository_url,
            "platform_id": self.platform_id,
        }


# ---------------------------------------------------------------------------
# Field mapping
# ---------------------------------------------------------------------------

@dataclass
class FieldMapping:
    """Maps a platform field to a canonical field."""
    source_field: str       # Dot-notation path; "" means the whole record
    target_field: str
    transform: str | None = None
    default: Any = None


@dataclass
class SchemaMapping:
    platform_id: str
    mappings: list[FieldMapping] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Transform functions
# ---------------------------------------------------------------------------

def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        # epoch milliseconds past year 2001, seconds otherwise
        seconds = value / 1000 if value > 1e12 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _replit_origin(value: Any) -> str | None:
    if isinstance(value, dict) and value.get("type") == "github":
        return value.get("url")
    return None


def _vercel_deployment_url(record: Any) -> str | None:
    alias = record.get("alias") or []
    host = alias[0] if alias else record.get("url")
    return f"https://{host}" if host else None


TRANSFORMS: dict[str, Callable[[Any], Any]] = {
    "str": lambda v: str(v) if v is not None else "",
    "strip": lambda v: str(v).strip() if v else "",
    "lowercase": lambda v: str(v).lower() if v else "",
    "timestamp": _parse_timestamp,
    "visibility": lambda v: "private" if v else "public",
    "replit_origin": _replit_origin,
    "vercel_deployment_url": _vercel_deployment_url,
}


# ---------------------------------------------------------------------------
# DataNormalizer
# ---------------------------------------------------------------------------

class DataNormalizer:
    """Normalizes platform app records using registered mappings."""

    def __init__(self, mappings: list[SchemaMapping] | None = None):
        self._mappings: dict[str, SchemaMapping] = {}
        for mapping in mappings if mappings is not None else DEFAULT_MAPPINGS:
            self.register_mapping(mapping)

    def register_mapping(self, mapping: SchemaMapping) -> None:
        self._mappings[mapping.platform_id] = mapping

    def has_mapping(self, platform_id: str) -> bool:
        return platform_id in self._mappings

    def normalize(self, platform_id: str, raw_data: Any) -> CanonicalAppRecord | Any:
        """
        Normalize a raw platform record.

        Unmapped platforms (and non-object records) are returned unchanged.
        """
        mapping = self._mappings.get(platform_id)
        if mapping is None or not isinstance(raw_data, dict):
            return raw_data

        values: dict[str, Any] = {}
        for fm in mapping.mappings:
            value = self._get_nested(raw_data, fm.source_field)
            if value is None:
                value = fm.default

            if fm.transform and fm.transform in TRANSFORMS:
                try:
                    value = TRANSFORMS[fm.transform](value)
                except (ValueError, TypeError, KeyError, AttributeError, OverflowError, OSError):
                    value = fm.default

            values[fm.target_field] = value

        values["id"] = str(values.get("id") or "")
        values["name"] = values.get("name") or ""
        values["framework"] = values.get("framework") or ""
        values["status"] = values.get("status") or ""
        return CanonicalAppRecord(platform_id=platform_id, raw_data=raw_data, **values)

    @staticmethod
    def _get_nested(data: dict[str, Any], path: str) -> Any:
        """Access nested dict values via dot notation (e.g. 'deployment.url')."""
        if not path:
            return data
        current: Any = data
        for part in path.split("."):
            if isinstance(current, dict):
                current = current.get(part)
            else:
                return None
            if current is None:
                return None
        return current


# ---------------------------------------------------------------------------
# Platform mappings
# ---------------------------------------------------------------------------

BOLT_MAPPING = SchemaMapping(
    platform_id="bolt.new",
    mappings=[
        FieldMapping("id", "id", "str"),
        FieldMapping("name", "name", "strip"),
        FieldMapping("stack", "framework"),
        FieldMapping("deployment.url", "deployment_url"),
        FieldMapping("updatedAt", "last_update", "timestamp"),
        FieldMapping("status", "status"),
        FieldMapping("git.repository", "source_repository_url"),
    ],
)

REPLIT_MAPPING = SchemaMapping(
    platform_id="replit.com",
    mappings=[
        FieldMapping("id", "id", "str"),
        FieldMapping("title", "name", "strip"),
        FieldMapping("language", "framework"),
        FieldMapping("hostedUrl", "deployment_url"),
        FieldMapping("timeUpdated", "last_update", "timestamp"),
        FieldMapping("isPrivate", "status", "visibility", default=False),
        FieldMapping("origin", "source_repository_url", "replit_origin"),
    ],
)

VERCEL_MAPPING = SchemaMapping(
    platform_id="vercel.com",
    mappings=[
        FieldMapping("id", "id", "str"),
        FieldMapping("name", "name", "strip"),
        FieldMapping("framework", "framework"),
        FieldMapping("", "deployment_url", "vercel_deployment_url"),
        FieldMapping("updatedAt", "last_update", "timestamp"),
        FieldMapping("readyState", "status"),
        FieldMapping("link.repo", "source_repository_url"),
    ],
)

NETLIFY_MAPPING = SchemaMapping(
    platform_id="netlify.com",
    mappings=[
        FieldMapping("id", "id", "str"),
        FieldMapping("name", "name", "strip"),
        FieldMapping("build_settings.framework", "framework"),
        FieldMapping("ssl_url", "deployment_url"),
        FieldMapping("updated_at", "last_update", "timestamp"),
        FieldMapping("state", "status", "lowercase"),
        FieldMapping("build_settings.repo_url", "source_repository_url"),
    ],
)

DEFAULT_MAPPINGS: list[SchemaMapping] = [
    BOLT_MAPPING,
    REPLIT_MAPPING,
    VERCEL_MAPPING,
    NETLIFY_MAPPING,
]
