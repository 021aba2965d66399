"""
Similarity Scoring System

String similarity (normalized edit distance) and geographic similarity
(haversine distance) for content records, plus per-field evidence used in
duplicate reports.
"""

import math
import logging
from typing import Dict, List, Any, Optional, Tuple

import jellyfish
from fuzzywuzzy import fuzz

from ..utils import strip_accents

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

Coordinates = Tuple[float, float]


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Calculate distance in km between two points using haversine formula."""
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlng / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def parse_coordinates(value: Any) -> Optional[Coordinates]:
    """
    Read a (lat, lng) pair from the shapes used in the data files.

    Accepts ``[lat, lng]``, ``{"lat", "lng"}``, ``{"lat", "lon"}`` and
    ``{"latitude", "longitude"}``. Returns None for anything else or for
    out-of-range values.
    """
    lat = lng = None

    if isinstance(value, (list, tuple)) and len(value) >= 2:
        lat, lng = value[0], value[1]
    elif isinstance(value, dict):
        lat = value.get("lat", value.get("latitude"))
        lng = value.get("lng", value.get("lon", value.get("longitude")))

    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return None

    if math.isnan(lat) or math.isnan(lng):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None

    return lat, lng


class SimilarityScorer:
    """
    Similarity scoring for content records.

    All scores are on a 0..1 scale. Missing or empty inputs score 0.0, so two
    empty names are never considered similar.
    """

    def __init__(self, near_km: float = 1.0, far_km: float = 10.0):
        """Initialize the similarity scorer.

        Args:
            near_km: Distance at or under which locations score 1.0
            far_km: Distance at or over which locations score 0.0
        """
        if far_km <= near_km:
            raise ValueError("far_km must be greater than near_km")
        self.near_km = near_km
        self.far_km = far_km

    @staticmethod
    def _clean(value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip().lower()

    def string_similarity(self, a: Any, b: Any) -> float:
        """
        Normalized Levenshtein similarity.

        ``1 - distance / max(len(a), len(b))`` over trimmed lowercase text.
        Either side empty gives 0.0, including two empty strings.
        """
        value_a = self._clean(a)
        value_b = self._clean(b)

        if not value_a or not value_b:
            return 0.0
        if value_a == value_b:
            return 1.0

        distance = jellyfish.levenshtein_distance(value_a, value_b)
        return 1.0 - distance / max(len(value_a), len(value_b))

    def location_similarity(self, loc1: Any, loc2: Any) -> float:
        """
        Geographic similarity from the haversine distance.

        1.0 up to ``near_km``, 0.0 from ``far_km``, linear in between.
        Missing or invalid coordinates give 0.0.
        """
        distance = self.distance_km(loc1, loc2)
        if distance is None:
            return 0.0
        if distance <= self.near_km:
            return 1.0
        if distance >= self.far_km:
            return 0.0
        return 1.0 - (distance - self.near_km) / (self.far_km - self.near_km)

    def distance_km(self, loc1: Any, loc2: Any) -> Optional[float]:
        """Distance between two coordinate values, None if either is unusable."""
        coords_a = parse_coordinates(loc1)
        coords_b = parse_coordinates(loc2)
        if coords_a is None or coords_b is None:
            return None
        return haversine_km(coords_a[0], coords_a[1], coords_b[0], coords_b[1])

    def calculate_similarity(
        self,
        entity_a: Dict[str, Any],
        entity_b: Dict[str, Any],
        comparison_fields: List[str],
    ) -> Dict[str, Any]:
        """
        Calculate per-field similarity evidence between two records.

        Args:
            entity_a: First record to compare
            entity_b: Second record to compare
            comparison_fields: Scalar fields to compare

        Returns:
            Dictionary of metric scores for each field and an ``overall`` mean
            over the fields both records have
        """
        scores: Dict[str, Any] = {}

        for field in comparison_fields:
            value_a = entity_a.get(field)
            value_b = entity_b.get(field)

            if isinstance(value_a, (dict, list)) or isinstance(value_b, (dict, list)):
                continue

            text_a = strip_accents(self._clean(value_a))
            text_b = strip_accents(self._clean(value_b))
            if not text_a or not text_b:
                continue

            scores[field] = self._calculate_field_similarity(text_a, text_b)

        field_scores = [s["composite"] for s in scores.values()]
        scores["overall"] = sum(field_scores) / len(field_scores) if field_scores else 0.0

        return scores

    def _calculate_field_similarity(self, value_a: str, value_b: str) -> Dict[str, float]:
        """Calculate multiple similarity metrics for a single field."""
        scores = {
            "exact": 1.0 if value_a == value_b else 0.0,
            "levenshtein": self.string_similarity(value_a, value_b),
            "token_sort_ratio": fuzz.token_sort_ratio(value_a, value_b) / 100.0,
            "token_set_ratio": fuzz.token_set_ratio(value_a, value_b) / 100.0,
        }

        weights = {
            "exact": 0.2,
            "levenshtein": 0.4,
            "token_sort_ratio": 0.2,
            "token_set_ratio": 0.2,
        }
        scores["composite"] = sum(scores[metric] * weight for metric, weight in weights.items())

        return scores
