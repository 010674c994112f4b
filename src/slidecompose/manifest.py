"""Section validation and YAML manifest loading.

validate_sections() turns a raw section list (dicts, as parsed from JSON
or YAML) into normalized SectionDescriptors. It is all-or-nothing: one bad
section anywhere rejects the whole list, so no job is ever built from a
partially valid description.

Raw section shape (flat, one dict per section):
    type: results             # required, must be a registered type
    duration: 8               # optional seconds, default 5
    title: "Impressive Results"
    results:
      - {metric: "Speed", value: "10x", icon: "🚀"}

Manifest schema:
    video:
      resolution: [1920, 1080]  # optional
      background: "#0a0a0a"     # optional
    title: "Sample Video"       # optional, informational
    sections: [...]
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from .common import FPS, parse_hex_color
from .errors import ValidationError
from .templates import DEFAULT_RESULT_ICON, FieldSpec, get_template


DEFAULT_DURATION = 5

DEFAULT_RESOLUTION = (1920, 1080)
DEFAULT_BACKGROUND = "#0a0a0a"


@dataclass(frozen=True)
class ResultRow:
    metric: str
    value: str
    icon: str = DEFAULT_RESULT_ICON


@dataclass(frozen=True)
class SectionDescriptor:
    """One validated section: type tag, duration and normalized properties.

    properties holds every field of the type's schema, with defaults
    filled in for anything the input left out. It is a read-only view;
    list fields are tuples and result rows are ResultRows, so a descriptor
    (and any Composition holding it) cannot change after validation.
    Hashing uses type and duration only.
    """

    type: str
    duration_seconds: float = DEFAULT_DURATION
    properties: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    def __reduce__(self):
        # mappingproxy does not pickle; rebuild from a plain dict.
        return (SectionDescriptor, (self.type, self.duration_seconds, dict(self.properties)))

    @property
    def title(self) -> str:
        return self.properties.get("title", "")


# ── Section validation ─────────────────────────────────────────────


def validate_sections(raw_sections) -> list[SectionDescriptor]:
    """Validate and normalize a raw section list.

    Args:
        raw_sections: list of section dicts.

    Returns:
        List of SectionDescriptors, same order as the input.

    Raises:
        ValidationError: not a list, or any section is invalid. The
            message names the first offending section.
    """
    if not isinstance(raw_sections, list):
        raise ValidationError("Invalid input: sections array is required")
    return [validate_section(raw, i) for i, raw in enumerate(raw_sections)]


def validate_section(raw: dict, index: int = 0) -> SectionDescriptor:
    """Validate one raw section dict against its type's template."""
    if not isinstance(raw, dict):
        raise ValidationError(
            f"Section {index}: must be a mapping, got {type(raw).__name__}"
        )

    section_type = raw.get("type")
    try:
        template = get_template(section_type)
    except ValidationError as e:
        raise ValidationError(f"Section {index}: {e}") from None

    prefix = f"Section {index} ({section_type})"
    duration = _validate_duration(raw.get("duration"), prefix)

    properties = {}
    for spec in template.fields:
        properties[spec.name] = _normalize_field(spec, raw, prefix)

    return SectionDescriptor(section_type, duration, properties)


def _validate_duration(value, prefix: str) -> float:
    if value is None:
        return DEFAULT_DURATION
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(
            f"{prefix}: duration must be a positive number, got {value!r}"
        )
    if not math.isfinite(value) or value <= 0:
        raise ValidationError(
            f"{prefix}: duration must be a positive number, got {value!r}"
        )
    if not math.isfinite(value * FPS):
        raise ValidationError(f"{prefix}: duration {value!r}s is too long")
    return value


def _normalize_field(spec: FieldSpec, raw: dict, prefix: str):
    value = raw.get(spec.name)
    if _is_blank(value) and spec.fallback is not None:
        value = raw.get(spec.fallback)

    if _is_blank(value):
        if spec.required:
            raise ValidationError(f"{prefix}: missing required field '{spec.name}'")
        return spec.default

    if spec.kind == "text":
        return _as_text(value, f"{prefix}: '{spec.name}'")
    if spec.kind == "text_list":
        return _as_text_list(value, spec.name, prefix)
    return _as_result_list(value, spec.name, prefix)


def _is_blank(value) -> bool:
    return value is None or value == ""


def _as_text(value, where: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValidationError(f"{where} must be a string, got {value!r}")


def _as_text_list(value, name: str, prefix: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValidationError(f"{prefix}: '{name}' must be a list")
    return tuple(_as_text(item, f"{prefix}: {name}[{j}]") for j, item in enumerate(value))


def _as_result_list(value, name: str, prefix: str) -> tuple[ResultRow, ...]:
    if not isinstance(value, list):
        raise ValidationError(f"{prefix}: '{name}' must be a list")

    rows = []
    for j, entry in enumerate(value):
        where = f"{prefix}, result {j}"
        if not isinstance(entry, dict):
            raise ValidationError(f"{where}: must be a mapping with metric and value")
        for key in ("metric", "value"):
            if _is_blank(entry.get(key)):
                raise ValidationError(f"{where}: missing '{key}'")
        icon = entry.get("icon")
        rows.append(ResultRow(
            metric=_as_text(entry["metric"], f"{where}: 'metric'"),
            value=_as_text(entry["value"], f"{where}: 'value'"),
            icon=DEFAULT_RESULT_ICON if _is_blank(icon) else _as_text(icon, f"{where}: 'icon'"),
        ))
    return tuple(rows)


# ── Manifest loading ──────────────────────────────────────────────


def load_manifest(manifest_path: str | Path) -> dict:
    """Load, validate, and normalize a video description manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Apply video defaults; parse resolution as tuple, background as RGB.
      3. Validate every section (all-or-nothing).

    Args:
        manifest_path: Path to the YAML manifest file.

    Returns:
        {"video": {...}, "title": str | None, "sections": [SectionDescriptor]}

    Raises:
        ValidationError: Bad video settings or any invalid section.
        FileNotFoundError: Missing manifest file.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValidationError("Manifest: top level must be a mapping")

    config = {
        "video": _load_video_settings(raw.get("video") or {}),
        "title": raw.get("title"),
        "sections": validate_sections(raw.get("sections")),
    }
    return config


def _load_video_settings(video: dict) -> dict:
    """Normalize the optional video block."""
    if not isinstance(video, dict):
        raise ValidationError("Manifest: 'video' must be a mapping")

    fps = video.get("fps", FPS)
    if fps != FPS:
        raise ValidationError(
            f"Manifest: video.fps is fixed at {FPS}, got {fps!r}"
        )

    resolution = video.get("resolution", DEFAULT_RESOLUTION)
    if (
        not isinstance(resolution, (list, tuple))
        or len(resolution) != 2
        or not all(isinstance(v, int) and v > 0 for v in resolution)
    ):
        raise ValidationError(
            f"Manifest: video.resolution must be [width, height], got {resolution!r}"
        )

    try:
        background = parse_hex_color(str(video.get("background", DEFAULT_BACKGROUND)))
    except ValueError as e:
        raise ValidationError(f"Manifest: video.background: {e}") from None

    return {"resolution": tuple(resolution), "fps": FPS, "background": background}
