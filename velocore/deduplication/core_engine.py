"""
Core Deduplication Engine

Decides whether two content records describe the same thing, finds duplicate
pairs within a content type, groups them into clusters and picks the record
each cluster is merged into.
"""

import logging
import time
from typing import Dict, List, Any, Optional, Union
from dataclasses import dataclass, field

from ..models import ContentType, DeduplicationConfig
from ..utils import is_empty
from .similarity_scoring import SimilarityScorer
from .content_processors import BaseContentProcessor, get_processor
from .completeness import CompletenessScorer
from .extraction import ContentRecord

logger = logging.getLogger(__name__)

Item = Union[ContentRecord, Dict[str, Any]]


@dataclass
class MatchResult:
    """Outcome of comparing two records."""
    is_duplicate: bool
    reason: str = ""  # "id", "name+location", "name" or ""
    similarity: float = 0.0
    location_similarity: Optional[float] = None
    distance_km: Optional[float] = None


@dataclass
class DuplicateCandidatePair:
    """Two records of one content type judged to be duplicates."""
    record_a: ContentRecord
    record_b: ContentRecord
    content_type: ContentType
    similarity: float
    reason: str
    field_scores: Dict[str, Any] = field(default_factory=dict)
    location_similarity: Optional[float] = None
    distance_km: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the pair to a dictionary for serialization."""
        return {
            "content_type": self.content_type.value,
            "record_a": {"id": self.record_a.id, "name": self.record_a.name,
                         "source": self.record_a.source_label},
            "record_b": {"id": self.record_b.id, "name": self.record_b.name,
                         "source": self.record_b.source_label},
            "similarity": self.similarity,
            "reason": self.reason,
            "location_similarity": self.location_similarity,
            "distance_km": self.distance_km,
            "field_scores": self.field_scores,
        }


def _payload(item: Item) -> Dict[str, Any]:
    return item.data if isinstance(item, ContentRecord) else item


class DeduplicationEngine:
    """
    Fuzzy duplicate detection for content records.

    Records match on an identical id, or on a similar name which, for content
    with a location (cols), must also sit at nearly the same place. Thresholds
    come from the per-type source configuration.
    """

    def __init__(self, config: Optional[DeduplicationConfig] = None):
        """Initialize the deduplication engine."""
        self.config = config or DeduplicationConfig()

        self.similarity_scorer = SimilarityScorer(
            near_km=self.config.matching.near_km,
            far_km=self.config.matching.far_km,
        )
        self.processors: Dict[ContentType, BaseContentProcessor] = {
            content_type: get_processor(content_type) for content_type in ContentType
        }

        # Statistics
        self.stats = {
            "total_comparisons": 0,
            "id_matches": 0,
            "name_location_matches": 0,
            "name_only_matches": 0,
            "location_rejections": 0,
        }

    def get_processor(self, content_type: ContentType) -> BaseContentProcessor:
        return self.processors[ContentType(content_type)]

    def completeness_scorer(self, content_type: ContentType) -> CompletenessScorer:
        """Completeness scorer honouring the configured expected fields."""
        source = self.config.source_for(content_type)
        return CompletenessScorer(self.get_processor(content_type), source.expected_fields)

    def name_similarity(self, name_a: Any, name_b: Any, content_type: ContentType) -> float:
        """Best of raw and processor-normalized name similarity."""
        processor = self.get_processor(content_type)
        raw = self.similarity_scorer.string_similarity(name_a, name_b)
        normalized = self.similarity_scorer.string_similarity(
            processor.normalize_name(name_a), processor.normalize_name(name_b)
        )
        return max(raw, normalized)

    def are_duplicates(self, item1: Item, item2: Item, content_type: ContentType) -> MatchResult:
        """
        Decide whether two records are duplicates.

        Args:
            item1: First record (ContentRecord or plain dict)
            item2: Second record
            content_type: Content type both records belong to

        Returns:
            MatchResult with the decision, the rule that fired and the score
        """
        content_type = ContentType(content_type)
        data_a = _payload(item1)
        data_b = _payload(item2)
        self.stats["total_comparisons"] += 1

        id_a = data_a.get("id")
        id_b = data_b.get("id")
        if not is_empty(id_a) and id_a == id_b:
            self.stats["id_matches"] += 1
            return MatchResult(is_duplicate=True, reason="id", similarity=1.0)

        source = self.config.source_for(content_type)
        similarity = self.name_similarity(data_a.get("name"), data_b.get("name"), content_type)

        if similarity <= source.name_threshold:
            return MatchResult(is_duplicate=False, similarity=similarity)

        if source.location_threshold is None:
            self.stats["name_only_matches"] += 1
            return MatchResult(is_duplicate=True, reason="name", similarity=similarity)

        processor = self.get_processor(content_type)
        coords_a = processor.get_coordinates(data_a)
        coords_b = processor.get_coordinates(data_b)
        location_similarity = self.similarity_scorer.location_similarity(coords_a, coords_b)
        distance = self.similarity_scorer.distance_km(coords_a, coords_b)

        if location_similarity > source.location_threshold:
            self.stats["name_location_matches"] += 1
            return MatchResult(
                is_duplicate=True,
                reason="name+location",
                similarity=similarity,
                location_similarity=location_similarity,
                distance_km=distance,
            )

        self.stats["location_rejections"] += 1
        return MatchResult(
            is_duplicate=False,
            reason="name",
            similarity=similarity,
            location_similarity=location_similarity,
            distance_km=distance,
        )

    def find_duplicates(self, records: List[ContentRecord],
                        content_type: Optional[ContentType] = None) -> List[DuplicateCandidatePair]:
        """
        Compare every pair of records of one content type.

        Args:
            records: Records of a single content type
            content_type: Defaults to the type of the first record

        Returns:
            Duplicate pairs in comparison order
        """
        if not records:
            return []

        content_type = ContentType(content_type or records[0].content_type)
        processor = self.get_processor(content_type)
        start_time = time.time()

        logger.info(f"🔍 Comparing {len(records)} {content_type.value} records")

        pairs = []
        for i, record_a in enumerate(records):
            for record_b in records[i + 1:]:
                match = self.are_duplicates(record_a, record_b, content_type)
                if not match.is_duplicate:
                    continue

                pairs.append(DuplicateCandidatePair(
                    record_a=record_a,
                    record_b=record_b,
                    content_type=content_type,
                    similarity=match.similarity,
                    reason=match.reason,
                    field_scores=self.similarity_scorer.calculate_similarity(
                        record_a.data, record_b.data, processor.get_comparison_fields()
                    ),
                    location_similarity=match.location_similarity,
                    distance_km=match.distance_km,
                ))

        logger.info(f"   🎯 Found {len(pairs)} duplicate pairs "
                    f"in {time.time() - start_time:.2f} seconds")
        return pairs

    def cluster_duplicates(self, records: List[ContentRecord],
                           pairs: List[DuplicateCandidatePair]) -> List[List[ContentRecord]]:
        """
        Group records into connected components of duplicate pairs.

        Every record lands in exactly one cluster; records without duplicates
        form single-record clusters. Clusters and their members keep input
        order.
        """
        index_of = {id(record): i for i, record in enumerate(records)}
        parent = list(range(len(records)))

        def find(i: int) -> int:
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        for pair in pairs:
            a = index_of.get(id(pair.record_a))
            b = index_of.get(id(pair.record_b))
            if a is None or b is None:
                logger.warning("Skipping duplicate pair whose records are not in the input")
                continue
            root_a, root_b = find(a), find(b)
            if root_a != root_b:
                parent[max(root_a, root_b)] = min(root_a, root_b)

        clusters: Dict[int, List[ContentRecord]] = {}
        for i, record in enumerate(records):
            clusters.setdefault(find(i), []).append(record)

        return list(clusters.values())

    def choose_primary(self, cluster: List[ContentRecord]) -> ContentRecord:
        """
        Pick the record a cluster is merged into.

        Configured preferred ids win, then the most complete record, then the
        earliest one.
        """
        if not cluster:
            raise ValueError("cannot choose a primary record from an empty cluster")

        preferred = list(self.config.merge.preferred_ids)
        scorer = self.completeness_scorer(cluster[0].content_type)

        def rank(entry):
            position, record = entry
            preference = preferred.index(record.id) if record.id in preferred else len(preferred)
            return preference, -scorer.score(record.data), position

        return min(enumerate(cluster), key=rank)[1]

    def get_statistics(self) -> Dict[str, Any]:
        """Get matching statistics."""
        return {
            "engine_stats": self.stats.copy(),
            "thresholds": {
                content_type.value: {
                    "name": self.config.source_for(content_type).name_threshold,
                    "location": self.config.source_for(content_type).location_threshold,
                }
                for content_type in ContentType
            },
        }
