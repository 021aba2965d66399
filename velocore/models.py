"""Data models for the content deduplication pipeline."""

import logging
import re
from typing import Dict, List, Any, Optional, Union
from pathlib import Path
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import RecordValidationError
from .utils import slugify

logger = logging.getLogger(__name__)


class ContentType(str, Enum):
    """Content families kept in the platform data files."""

    COLS = "cols"
    NUTRITION = "nutrition"
    TRAINING = "training"


# ---------------------------------------------------------------------------
# Record models (validated on ingest)
# ---------------------------------------------------------------------------

_GROUP_SEPARATORS = " ,\u00a0\u202f"
_NUMBER_PATTERN = re.compile(
    rf"(?P<grouped>-?\d{{1,3}}(?:[{_GROUP_SEPARATORS}]\d{{3}})+(?!\d)(?:\.\d+)?)"
    r"|(?P<plain>-?\d+(?:[.,]\d+)?)"
)

# Col fields coerced to numbers; unreadable values are dropped from the record
HEIGHT_FIELDS = ("altitude", "elevation")


def _coerce_number(value: Any) -> Optional[Union[int, float]]:
    """
    Accept numbers and numeric strings such as "2758", "2758 m" or "2,758m".

    A comma or space followed by exactly three digits groups thousands; any
    other comma is a decimal point. Blank strings and strings without digits
    give None.
    """
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        match = _NUMBER_PATTERN.search(value)
        if not match:
            logger.warning(f"⚠️  Ignoring non-numeric height {value!r}")
            return None
        if match.group("grouped"):
            text = re.sub(f"[{_GROUP_SEPARATORS}]", "", match.group("grouped"))
        else:
            text = match.group("plain").replace(",", ".")
        return float(text) if "." in text else int(text)
    raise ValueError(f"expected a number, got {type(value).__name__}")


class BaseContentRecord(BaseModel):
    """Shape every content record shares. Unknown fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    slug: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Accept numeric ids, store them as strings."""
        if v is None:
            return v
        if isinstance(v, bool):
            raise ValueError("id must be a string or a number")
        if isinstance(v, int):
            return str(v)
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        if isinstance(v, str):
            return v.strip()
        raise ValueError("id must be a string or a number")

    @field_validator("name", "slug", mode="before")
    @classmethod
    def strip_text(cls, v):
        """Names and slugs must be strings when present."""
        if v is None:
            return v
        if not isinstance(v, str):
            raise ValueError("must be a string")
        return v.strip()


class ColRecord(BaseContentRecord):
    """A col (mountain pass)."""

    altitude: Optional[Union[int, float]] = None
    elevation: Optional[Union[int, float]] = None

    @field_validator("altitude", "elevation", mode="before")
    @classmethod
    def parse_height(cls, v):
        return _coerce_number(v)


class RecipeRecord(BaseContentRecord):
    """A recipe or nutrition plan."""


class TrainingPlanRecord(BaseContentRecord):
    """A training programme."""


# Content types matched on location as well as name
DEFAULT_LOCATION_THRESHOLDS = {
    ContentType.COLS: 0.95,
}


RECORD_MODELS = {
    ContentType.COLS: ColRecord,
    ContentType.NUTRITION: RecipeRecord,
    ContentType.TRAINING: TrainingPlanRecord,
}


def validate_record(raw: Any, content_type: ContentType) -> Dict[str, Any]:
    """Validate one raw record and return its normalized dict form.

    A missing slug is derived from the name.

    Raises:
        RecordValidationError: the record is not an object or a field has the
            wrong type
    """
    if not isinstance(raw, dict):
        raise RecordValidationError(
            f"expected an object, got {type(raw).__name__}", value=raw
        )

    model_class = RECORD_MODELS[ContentType(content_type)]
    try:
        model = model_class.model_validate(raw)
    except ValidationError as e:
        first_error = e.errors()[0]
        field = ".".join(str(part) for part in first_error.get("loc", ()))
        raise RecordValidationError(
            first_error.get("msg", str(e)), field=field or None
        ) from e

    record = model.model_dump(exclude_unset=True)
    if model_class is ColRecord:
        for field_name in HEIGHT_FIELDS:
            if field_name in record and record[field_name] is None:
                del record[field_name]
    if not record.get("slug") and record.get("name"):
        record["slug"] = slugify(record["name"])
    return record


# ---------------------------------------------------------------------------
# Configuration models
# ---------------------------------------------------------------------------


class ContentSourceConfig(BaseModel):
    """Where one content type is read from and how it is matched."""

    model_config = ConfigDict(frozen=True)

    paths: List[str] = Field(default_factory=list)
    name_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    location_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    expected_fields: Optional[List[str]] = None
    recursive: bool = False


class MatchingConfig(BaseModel):
    """Geographic similarity decay."""

    model_config = ConfigDict(frozen=True)

    near_km: float = Field(default=1.0, ge=0.0)
    far_km: float = Field(default=10.0, gt=0.0)

    @model_validator(mode="after")
    def check_range(self):
        if self.far_km <= self.near_km:
            raise ValueError("far_km must be greater than near_km")
        return self


class MergeConfig(BaseModel):
    """Merge conflict policy."""

    model_config = ConfigDict(frozen=True)

    prefer_longer: List[str] = Field(
        default_factory=lambda: ["description", "long_description", "summary", "history"]
    )
    keep_primary_identity: bool = True
    record_merge_sources: bool = True
    preferred_ids: List[str] = Field(default_factory=list)


class OutputConfig(BaseModel):
    """Where the canonical dataset and report go."""

    model_config = ConfigDict(frozen=True)

    output_dir: str = "output/content"
    report_path: str = "docs/DUPLICATE_CONTENT_REPORT.md"
    group_by_category: bool = False
    include_completeness: bool = True


class LoggingConfig(BaseModel):
    """Logging options."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = "text"
    file: Optional[str] = None

    @field_validator("format")
    @classmethod
    def check_format(cls, v):
        if v not in ("json", "text"):
            raise ValueError("format must be 'json' or 'text'")
        return v


class DeduplicationConfig(BaseModel):
    """Complete configuration model."""

    model_config = ConfigDict(frozen=True)

    root_dir: str = "."
    sources: Dict[ContentType, ContentSourceConfig] = Field(default_factory=dict)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def source_for(self, content_type: ContentType) -> ContentSourceConfig:
        """
        Source settings for a content type, defaults when not configured.

        A configured source that leaves ``location_threshold`` unset keeps
        the default location gate; only an explicit null turns it off.
        """
        content_type = ContentType(content_type)
        if content_type in self.sources:
            source = self.sources[content_type]
            default = DEFAULT_LOCATION_THRESHOLDS.get(content_type)
            if default is not None and "location_threshold" not in source.model_fields_set:
                return source.model_copy(update={"location_threshold": default})
            return source
        return ContentSourceConfig(
            location_threshold=DEFAULT_LOCATION_THRESHOLDS.get(content_type)
        )

    def resolve(self, path: str) -> Path:
        """Resolve a configured path against root_dir."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return Path(self.root_dir) / candidate
