"""
Content-Specific Processors

Per content type rules: which fields a complete record carries, how names are
normalized before comparison, where coordinates live, and which directory a
record is filed under.
"""

import logging
import re
from typing import Dict, List, Any, Optional
from abc import ABC, abstractmethod

from ..models import ContentType
from ..utils import strip_accents, get_path, is_empty

logger = logging.getLogger(__name__)


class BaseContentProcessor(ABC):
    """Base class for content-specific processors."""

    # Expected field -> alternative keys that satisfy it
    FIELD_ALIASES: Dict[str, List[str]] = {}

    def __init__(self, content_type: ContentType):
        """Initialize the processor."""
        self.content_type = content_type

    @abstractmethod
    def get_expected_fields(self) -> List[str]:
        """Fields a complete record of this type carries."""
        pass

    @abstractmethod
    def get_comparison_fields(self) -> List[str]:
        """Scalar fields compared for report evidence."""
        pass

    @abstractmethod
    def categorize(self, record: Dict[str, Any]) -> str:
        """Directory a record is filed under when output is grouped."""
        pass

    def get_report_fields(self) -> List[str]:
        """Fields whose values are shown side by side in reports."""
        return []

    def get_coordinates(self, record: Dict[str, Any]) -> Optional[Any]:
        """Raw coordinate value of a record, if the type has one."""
        return None

    def normalize_name(self, name: Any) -> str:
        """Lowercase, accent-free, punctuation-free name."""
        if not isinstance(name, str):
            return ""
        text = strip_accents(name).lower()
        text = re.sub(r"[^\w\s]", " ", text)
        return re.sub(r"\s+", " ", text).strip()

    def resolve_field(self, record: Dict[str, Any], field: str) -> Optional[Any]:
        """Read a field, falling back to its aliases when it is empty."""
        value = get_path(record, field)
        if not is_empty(value):
            return value
        for alias in self.FIELD_ALIASES.get(field, []):
            value = get_path(record, alias)
            if not is_empty(value):
                return value
        return None

    def _full_text(self, record: Dict[str, Any], fields: List[str]) -> str:
        parts = []
        for field in fields:
            value = record.get(field)
            if isinstance(value, dict):
                parts.extend(str(v) for v in value.values() if isinstance(v, str))
            elif isinstance(value, str):
                parts.append(value)
        return strip_accents(" ".join(parts)).lower()


class ColProcessor(BaseContentProcessor):
    """Processor for cols (mountain passes)."""

    FIELD_ALIASES = {
        "altitude": ["elevation", "height"],
        "gradient": ["avgGradient", "average_gradient", "avg_gradient"],
        "elevation_profile": ["elevationProfile"],
        "images": ["image", "photos"],
        "coordinates": ["location.coordinates", "location.lat", "gps"],
    }

    # Generic words that carry no identity ("Passo dello Stelvio" -> "stelvio")
    GENERIC_NAME_TOKENS = {
        "col", "colle", "collado", "coll", "passo", "pass", "paso", "pas",
        "puerto", "port", "alto", "alpe", "cime", "cima", "mont", "monte",
        "de", "du", "des", "del", "della", "dello", "delle", "dei", "di",
        "da", "la", "le", "les", "l", "d", "el", "the", "of",
    }

    COUNTRY_PATTERNS = [
        ("france", r"alpe d.huez|ventoux|galibier|tourmalet|izoard|france|francais|pyrenees"),
        ("italy", r"stelvio|mortirolo|gavia|giro|italie|italy|italia|italien|dolomit"),
        ("spain", r"angliru|veleta|espagne|spain|espana|espagnol"),
        ("switzerland", r"grimsel|suisse|switzerland|schweiz|gotthard"),
    ]

    def __init__(self):
        super().__init__(ContentType.COLS)

    def get_expected_fields(self) -> List[str]:
        """Get expected fields for cols."""
        return [
            "id",
            "name",
            "slug",
            "country",
            "region",
            "altitude",
            "length",
            "gradient",
            "difficulty",
            "description",
            "coordinates",
            "elevation_profile",
            "images",
        ]

    def get_comparison_fields(self) -> List[str]:
        return ["name", "region", "country", "difficulty"]

    def get_report_fields(self) -> List[str]:
        return ["altitude", "coordinates"]

    def get_coordinates(self, record: Dict[str, Any]) -> Optional[Any]:
        """Coordinates from `coordinates`, `location.coordinates`, `location` or `gps`."""
        coordinates = record.get("coordinates")
        if not is_empty(coordinates):
            return coordinates

        location = record.get("location")
        if isinstance(location, dict):
            if not is_empty(location.get("coordinates")):
                return location["coordinates"]
            return location

        gps = record.get("gps")
        if not is_empty(gps):
            return gps
        return None

    def normalize_name(self, name: Any) -> str:
        """Drop generic pass words so language variants of one col compare equal."""
        text = super().normalize_name(name)
        tokens = [token for token in text.split() if token not in self.GENERIC_NAME_TOKENS]
        return " ".join(tokens) if tokens else text

    def categorize(self, record: Dict[str, Any]) -> str:
        """File cols by country."""
        full_text = self._full_text(record, ["name", "country", "region", "description"])
        for country, pattern in self.COUNTRY_PATTERNS:
            if re.search(pattern, full_text):
                return country
        return "other"


class RecipeProcessor(BaseContentProcessor):
    """Processor for nutrition content (recipes and plans)."""

    FIELD_ALIASES = {
        "nutrition_facts": ["nutritionFacts", "nutrition_info", "nutrition"],
        "image": ["images", "photo"],
        "instructions": ["steps", "preparation"],
    }

    def __init__(self):
        super().__init__(ContentType.NUTRITION)

    def get_expected_fields(self) -> List[str]:
        """Get expected fields for recipes."""
        return [
            "id",
            "name",
            "slug",
            "category",
            "description",
            "ingredients",
            "instructions",
            "nutrition_facts",
            "image",
        ]

    def get_comparison_fields(self) -> List[str]:
        return ["name", "category", "type"]

    def get_report_fields(self) -> List[str]:
        return ["category"]

    def categorize(self, record: Dict[str, Any]) -> str:
        """File nutrition content as recipes, plans or guides."""
        full_text = self._full_text(record, ["name", "type", "category"])
        if re.search(r"recette|recipe|repas|meal|dejeuner|diner|snack|breakfast", full_text):
            return "recipes"
        if re.search(r"plan|planning|programme|regime|diet", full_text):
            return "plans"
        return "guides"


class TrainingPlanProcessor(BaseContentProcessor):
    """Processor for training programmes."""

    FIELD_ALIASES = {
        "level": ["difficulty"],
        "weeks": ["schedule", "program"],
        "sessions": ["workouts"],
    }

    def __init__(self):
        super().__init__(ContentType.TRAINING)

    def get_expected_fields(self) -> List[str]:
        """Get expected fields for training plans."""
        return [
            "id",
            "name",
            "slug",
            "level",
            "duration",
            "description",
            "weeks",
            "sessions",
        ]

    def get_comparison_fields(self) -> List[str]:
        return ["name", "level", "type", "duration"]

    def get_report_fields(self) -> List[str]:
        return ["level", "duration"]

    def categorize(self, record: Dict[str, Any]) -> str:
        """File training plans by level."""
        full_text = self._full_text(record, ["name", "description", "difficulty", "level"])
        if re.search(r"debutant|beginner|facile|easy|niveau 1|initiation", full_text):
            return "beginner"
        if re.search(r"intermediaire|intermediate|moyen|medium|niveau 2", full_text):
            return "intermediate"
        return "advanced"


PROCESSORS = {
    ContentType.COLS: ColProcessor,
    ContentType.NUTRITION: RecipeProcessor,
    ContentType.TRAINING: TrainingPlanProcessor,
}


def get_processor(content_type: ContentType) -> BaseContentProcessor:
    """Create the processor for a content type."""
    return PROCESSORS[ContentType(content_type)]()
