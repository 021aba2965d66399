"""
Deduplication Pipeline

Linear batch run: extract every configured source, match duplicates within
each content type, then either report them (detect) or merge them and write
the canonical dataset (merge).
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Any, Optional, Tuple

from ..errors import ErrorHandler
from ..logging_config import log_context, Timer
from ..models import ContentType, DeduplicationConfig
from ..utils import slugify
from .core_engine import DeduplicationEngine, DuplicateCandidatePair
from .extraction import ContentRecord, RecordExtractor
from .merge_proposals import MergeExecutor, MergeResult
from .report import ReportGenerator

logger = logging.getLogger(__name__)

MODES = ("detect", "merge")


@dataclass
class PipelineResult:
    """Everything a pipeline run produced."""
    mode: str
    records: Dict[ContentType, List[ContentRecord]] = field(default_factory=dict)
    pairs: List[DuplicateCandidatePair] = field(default_factory=list)
    merge_results: List[MergeResult] = field(default_factory=list)
    canonical: Dict[ContentType, List[Dict[str, Any]]] = field(default_factory=dict)
    written_files: List[Path] = field(default_factory=list)
    report_path: Optional[Path] = None
    error_statistics: Dict[str, Any] = field(default_factory=dict)
    processing_time: float = 0.0

    @property
    def record_counts(self) -> Dict[str, int]:
        return {content_type.value: len(records) for content_type, records in self.records.items()}

    @property
    def duplicate_counts(self) -> Dict[str, int]:
        counts = {content_type.value: 0 for content_type in ContentType}
        for pair in self.pairs:
            counts[pair.content_type.value] += 1
        return counts


class DeduplicationPipeline:
    """Runs extraction, matching, merging and output for all content types."""

    def __init__(self, config: DeduplicationConfig, error_handler: Optional[ErrorHandler] = None):
        self.config = config
        self.error_handler = error_handler or ErrorHandler()

        self.extractor = RecordExtractor(self.error_handler)
        self.engine = DeduplicationEngine(config)
        self.merge_executor = MergeExecutor(config.merge, self.error_handler)
        self.report_generator = ReportGenerator()

    def extract(self) -> Dict[ContentType, List[ContentRecord]]:
        """Extract the records of every configured source, per content type."""
        records: Dict[ContentType, List[ContentRecord]] = {}

        for content_type in ContentType:
            source = self.config.source_for(content_type)
            type_records = []
            with log_context(content_type=content_type.value):
                for path in source.paths:
                    type_records.extend(self.extractor.extract_path(
                        self.config.resolve(path), content_type, recursive=source.recursive
                    ))
            records[content_type] = type_records
            logger.info(f"📊 {len(type_records)} {content_type.value} records loaded")

        return records

    def detect(self, records: Dict[ContentType, List[ContentRecord]]) -> List[DuplicateCandidatePair]:
        """Find duplicate pairs within each content type."""
        pairs = []
        for content_type, type_records in records.items():
            with log_context(content_type=content_type.value):
                pairs.extend(self.engine.find_duplicates(type_records, content_type))
        return pairs

    def merge(
        self,
        records: Dict[ContentType, List[ContentRecord]],
        pairs: List[DuplicateCandidatePair],
    ) -> Tuple[Dict[ContentType, List[Dict[str, Any]]], List[MergeResult]]:
        """
        Merge each duplicate cluster into its primary record.

        Returns:
            Canonical records per content type and the merge results. A
            cluster whose merge fails keeps all of its records unmerged.
        """
        canonical: Dict[ContentType, List[Dict[str, Any]]] = {}
        merge_results: List[MergeResult] = []

        for content_type, type_records in records.items():
            type_pairs = [pair for pair in pairs if pair.content_type == content_type]
            clusters = self.engine.cluster_duplicates(type_records, type_pairs)
            output = []

            with log_context(content_type=content_type.value):
                for cluster in clusters:
                    if len(cluster) == 1:
                        output.append(copy.deepcopy(cluster[0].data))
                        continue

                    primary = self.engine.choose_primary(cluster)
                    duplicates = [record for record in cluster if record is not primary]
                    members = {id(record) for record in cluster}
                    proposal = self.merge_executor.create_proposal(
                        primary,
                        duplicates,
                        pairs=[pair for pair in type_pairs if id(pair.record_a) in members],
                    )

                    result = self.merge_executor.execute_merge(proposal)
                    merge_results.append(result)

                    if result.success:
                        output.append(result.merged_record)
                    else:
                        logger.warning(f"⚠️  Keeping {len(cluster)} records unmerged "
                                       f"after failed merge of {result.primary_id}")
                        output.extend(copy.deepcopy(record.data) for record in cluster)

            canonical[content_type] = output
            logger.info(f"🔄 {content_type.value}: {len(type_records)} records -> "
                        f"{len(output)} canonical records")

        return canonical, merge_results

    def assess_quality(
        self, canonical: Dict[ContentType, List[Dict[str, Any]]]
    ) -> Dict[ContentType, List[Dict[str, Any]]]:
        """Completeness and missing fields of every record."""
        quality = {}
        for content_type, type_records in canonical.items():
            scorer = self.engine.completeness_scorer(content_type)
            quality[content_type] = [
                {
                    "id": record.get("id"),
                    "name": record.get("name"),
                    "completeness": scorer.score(record),
                    "missing": scorer.missing(record),
                }
                for record in type_records
            ]
        return quality

    def write_dataset(self, canonical: Dict[ContentType, List[Dict[str, Any]]]) -> List[Path]:
        """
        Write one JSON file per record and an index per content type.

        Raises:
            OutputDirectoryError: an output directory cannot be created
        """
        output_root = self.config.resolve(self.config.output.output_dir)
        group_by_category = self.config.output.group_by_category
        written = []

        self._make_directory(output_root)

        for content_type, type_records in canonical.items():
            processor = self.engine.get_processor(content_type)
            scorer = self.engine.completeness_scorer(content_type)
            type_dir = output_root / content_type.value
            self._make_directory(type_dir)

            used_paths = set()
            items = []

            for position, record in enumerate(type_records):
                directory = type_dir
                if group_by_category:
                    directory = type_dir / processor.categorize(record)
                    self._make_directory(directory)

                slug = self._record_slug(record, content_type, position)
                path = self._unique_path(directory, slug, used_paths)
                if self._save_json(path, record, content_type, record.get("id")):
                    written.append(path)

                item = copy.deepcopy(record)
                if self.config.output.include_completeness:
                    item["completeness"] = scorer.score(record)
                items.append(item)

            index = {
                "content_type": content_type.value,
                "count": len(items),
                "items": items,
            }
            index_path = type_dir / "index.json"
            if self._save_json(index_path, index, content_type):
                written.append(index_path)

            logger.info(f"💾 Wrote {len(type_records)} {content_type.value} records to {type_dir}")

        return written

    def run(self, mode: str = "detect") -> PipelineResult:
        """
        Run the pipeline.

        Args:
            mode: "detect" writes the report only, "merge" also writes the
                canonical dataset

        Returns:
            PipelineResult with records, pairs, merges and written files
        """
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {mode!r}")

        result = PipelineResult(mode=mode)

        logger.info(f"🚀 Starting content deduplication ({mode})")

        with Timer() as timer, log_context(run_mode=mode):
            result.records = self.extract()
            result.pairs = self.detect(result.records)

            if mode == "merge":
                result.canonical, result.merge_results = self.merge(result.records, result.pairs)
                result.written_files = self.write_dataset(result.canonical)
                merge_results = result.merge_results
            else:
                result.canonical = {
                    content_type: [record.data for record in records]
                    for content_type, records in result.records.items()
                }
                merge_results = None

            quality = self.assess_quality(result.canonical)
            result.report_path = self.report_generator.write(
                self.config.resolve(self.config.output.report_path),
                result.pairs,
                merge_results=merge_results,
                quality=quality,
            )

        result.processing_time = timer.duration_ms / 1000
        result.error_statistics = self.error_handler.get_error_statistics()

        logger.info(f"✅ Deduplication complete in {result.processing_time:.2f} seconds")
        logger.info(f"   📊 Records: {result.record_counts}")
        logger.info(f"   🎯 Duplicate pairs: {len(result.pairs)}")
        if result.error_statistics["total_errors"]:
            logger.info(f"   ⚠️  Errors logged: {result.error_statistics['total_errors']}")

        return result

    def _make_directory(self, path: Path):
        with self.error_handler.error_context(operation="write_output", source_path=str(path)):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                self.error_handler.handle_error(e)

    def _record_slug(self, record: Dict[str, Any], content_type: ContentType, position: int) -> str:
        for key in ("slug", "name", "id"):
            value = record.get(key)
            if isinstance(value, str) and slugify(value):
                return slugify(value)
        return f"{content_type.value}-{position + 1}"

    def _unique_path(self, directory: Path, slug: str, used_paths: set) -> Path:
        path = directory / f"{slug}.json"
        suffix = 2
        while path in used_paths or path.name == "index.json":
            path = directory / f"{slug}-{suffix}.json"
            suffix += 1
        used_paths.add(path)
        return path

    def _save_json(self, path: Path, data: Dict[str, Any], content_type: ContentType,
                   record_id: Optional[str] = None) -> bool:
        with self.error_handler.error_context(
            operation="save_json",
            content_type=content_type.value,
            source_path=str(path),
            record_id=record_id,
        ):
            try:
                with open(path, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                return True
            except (OSError, TypeError, ValueError) as e:
                self.error_handler.handle_error(e, reraise=False)
                return False
