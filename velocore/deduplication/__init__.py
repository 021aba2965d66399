"""
Content Deduplication for the Cycling Platform

Finds and merges duplicate content records (cols, recipes and nutrition
plans, training plans) spread across the platform's JSON and JavaScript data
files.

Components:
- Record Extraction: JSON parsing and JS AST extraction of record arrays
- Similarity Scoring: Edit distance and haversine location similarity
- Content Processors: Per content type names, coordinates and expected fields
- Core Engine: Duplicate matching, clustering and primary selection
- Merge Proposals: Deep merge of duplicate clusters with conflict tracking
- Completeness: Field completeness scoring
- Report: Markdown duplicate report
- Pipeline: Extract, match, merge and write in one batch run

Usage:
    from velocore.deduplication import DeduplicationEngine

    engine = DeduplicationEngine()
    match = engine.are_duplicates(col_a, col_b, ContentType.COLS)
"""

from .core_engine import DeduplicationEngine, DuplicateCandidatePair, MatchResult
from .similarity_scoring import SimilarityScorer, haversine_km, parse_coordinates
from .content_processors import (
    BaseContentProcessor,
    ColProcessor,
    RecipeProcessor,
    TrainingPlanProcessor,
    get_processor,
)
from .extraction import ContentRecord, RecordExtractor
from .merge_proposals import MergeProposal, MergeExecutor, MergeResult, deep_merge, merge_records
from .completeness import (
    CompletenessScorer,
    calculate_completeness,
    missing_fields,
    completeness_status,
    completeness_band,
)
from .report import ReportGenerator
from .pipeline import DeduplicationPipeline, PipelineResult

__all__ = [
    # Core engine
    "DeduplicationEngine",
    "DuplicateCandidatePair",
    "MatchResult",
    # Similarity scoring
    "SimilarityScorer",
    "haversine_km",
    "parse_coordinates",
    # Content processors
    "BaseContentProcessor",
    "ColProcessor",
    "RecipeProcessor",
    "TrainingPlanProcessor",
    "get_processor",
    # Extraction
    "ContentRecord",
    "RecordExtractor",
    # Merge execution
    "MergeProposal",
    "MergeExecutor",
    "MergeResult",
    "deep_merge",
    "merge_records",
    # Completeness
    "CompletenessScorer",
    "calculate_completeness",
    "missing_fields",
    "completeness_status",
    "completeness_band",
    # Output
    "ReportGenerator",
    "DeduplicationPipeline",
    "PipelineResult",
]

__version__ = "1.0.0"
