"""
Merge Proposals and Execution System

Deep merging of duplicate content records: arrays are unioned, nested objects
merged key by key, and for scalars the first non-empty value wins except for
long text fields where the longer text wins. Conflicting values are recorded
so they can be reviewed in the report.
"""

import copy
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Any, Optional, Iterable
from dataclasses import dataclass, field

from ..errors import ErrorHandler
from ..models import ContentType, MergeConfig
from ..utils import canonical_json, get_path, is_empty
from .extraction import ContentRecord

logger = logging.getLogger(__name__)

DEFAULT_PREFER_LONGER = ("description", "long_description", "summary", "history")

# Keys tried in order to identify an object inside an array
ARRAY_ITEM_KEYS = ("url", "src", "id", "slug", "name")

IDENTITY_FIELDS = ("id", "slug", "name")

# Fields that always differ between duplicates and are not worth reporting
CONFLICT_IGNORED_FIELDS = {"id", "slug", "merged_from"}


def _item_key(item: Any) -> str:
    if isinstance(item, dict):
        for key in ARRAY_ITEM_KEYS:
            value = item.get(key)
            if not is_empty(value) and not isinstance(value, (dict, list)):
                return f"{key}:{canonical_json(value)}"
    return f"json:{canonical_json(item)}"


def _is_number_tuple(value: List[Any]) -> bool:
    """Numeric arrays such as [lat, lng] are single values, not sets."""
    return bool(value) and all(
        isinstance(item, (int, float)) and not isinstance(item, bool) for item in value
    )


def _merge_lists(target: List[Any], source: List[Any], prefer_longer: frozenset,
                 longer_active: bool) -> List[Any]:
    merged: List[Any] = []
    positions: Dict[str, int] = {}

    for item in list(target) + list(source):
        key = _item_key(item)
        if key not in positions:
            positions[key] = len(merged)
            merged.append(item)
        elif isinstance(item, dict) and isinstance(merged[positions[key]], dict):
            merged[positions[key]] = _merge_values(
                merged[positions[key]], item, prefer_longer, longer_active
            )

    return merged


def _merge_values(target: Any, source: Any, prefer_longer: frozenset,
                  longer_active: bool = False) -> Any:
    if isinstance(target, dict) and isinstance(source, dict):
        merged = dict(target)
        for key, value in source.items():
            if key in merged:
                merged[key] = _merge_values(
                    merged[key], value, prefer_longer, longer_active or key in prefer_longer
                )
            else:
                merged[key] = value
        return merged

    if isinstance(target, list) and isinstance(source, list):
        if not (_is_number_tuple(target) and _is_number_tuple(source)):
            return _merge_lists(target, source, prefer_longer, longer_active)

    if is_empty(target):
        return target if is_empty(source) else source
    if is_empty(source):
        return target

    if longer_active and isinstance(target, str) and isinstance(source, str):
        return source if len(source.strip()) > len(target.strip()) else target

    return target


def deep_merge(target: Dict[str, Any], source: Dict[str, Any],
               prefer_longer: Iterable[str] = DEFAULT_PREFER_LONGER) -> Dict[str, Any]:
    """
    Deep merge two records.

    Args:
        target: Record whose values win on conflict
        source: Record filling the gaps
        prefer_longer: Text fields (and everything nested under them) where
            the longer non-empty string wins instead

    Returns:
        A new merged dictionary; neither input is modified
    """
    return _merge_values(
        copy.deepcopy(target),
        copy.deepcopy(source),
        frozenset(prefer_longer),
    )


def record_identifier(record: Dict[str, Any]) -> Optional[str]:
    """Best identifier of a record: id, then slug, then name."""
    for key in IDENTITY_FIELDS:
        value = record.get(key)
        if not is_empty(value):
            return str(value)
    return None


def _merge_sources(record: Dict[str, Any]) -> List[str]:
    merged_from = record.get("merged_from")
    if isinstance(merged_from, list) and merged_from:
        return [str(value) for value in merged_from]
    identifier = record_identifier(record)
    return [identifier] if identifier else []


def merge_records(primary: Dict[str, Any], duplicate: Dict[str, Any],
                  config: Optional[MergeConfig] = None) -> Dict[str, Any]:
    """
    Fold a duplicate record into the primary one.

    The primary keeps its identity (id, slug, name) and the identifiers of
    both records are listed in ``merged_from``.
    """
    config = config or MergeConfig()
    merged = deep_merge(primary, duplicate, config.prefer_longer)

    if config.keep_primary_identity:
        for key in IDENTITY_FIELDS:
            if not is_empty(primary.get(key)):
                merged[key] = primary[key]

    if config.record_merge_sources:
        sources = []
        for identifier in _merge_sources(primary) + _merge_sources(duplicate):
            if identifier not in sources:
                sources.append(identifier)
        merged["merged_from"] = sources
    else:
        merged.pop("merged_from", None)

    return merged


def find_conflicts(target: Dict[str, Any], source: Dict[str, Any],
                   prefix: str = "") -> List[Dict[str, Any]]:
    """Scalar fields both records fill with different values."""
    conflicts = []

    for key, value in source.items():
        path = f"{prefix}{key}"
        if not prefix and key in CONFLICT_IGNORED_FIELDS:
            continue
        if key not in target:
            continue

        current = target[key]
        if isinstance(current, dict) and isinstance(value, dict):
            conflicts.extend(find_conflicts(current, value, prefix=f"{path}."))
        elif isinstance(current, (dict, list)) or isinstance(value, (dict, list)):
            continue
        elif not is_empty(current) and not is_empty(value) and current != value:
            conflicts.append({"field": path, "primary": current, "duplicate": value})

    return conflicts


@dataclass
class MergeProposal:
    """A cluster of duplicates to fold into one primary record."""
    proposal_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    content_type: Optional[ContentType] = None
    primary: Optional[ContentRecord] = None
    duplicates: List[ContentRecord] = field(default_factory=list)
    pairs: List[Any] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    status: str = "pending"  # pending, executed, failed


@dataclass
class MergeResult:
    """Result of a merge operation."""
    success: bool
    proposal_id: str = ""
    content_type: Optional[ContentType] = None
    primary_id: Optional[str] = None
    merged_ids: List[str] = field(default_factory=list)
    merged_record: Optional[Dict[str, Any]] = None
    conflicts: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class MergeExecutor:
    """
    Executes merge proposals.

    Duplicates are folded into the primary in order. Every field the records
    disagree on is kept on the result with the value that survived.
    """

    def __init__(self, config: Optional[MergeConfig] = None,
                 error_handler: Optional[ErrorHandler] = None):
        """Initialize the merge executor."""
        self.config = config or MergeConfig()
        self.error_handler = error_handler or ErrorHandler()

        # Merge statistics
        self.stats = {
            "total_proposals": 0,
            "successful_merges": 0,
            "failed_merges": 0,
            "records_merged_away": 0,
            "conflicts": 0,
        }

    def create_proposal(self, primary: ContentRecord, duplicates: List[ContentRecord],
                        pairs: Optional[List[Any]] = None) -> MergeProposal:
        """Create a new merge proposal."""
        proposal = MergeProposal(
            content_type=primary.content_type,
            primary=primary,
            duplicates=list(duplicates),
            pairs=list(pairs or []),
        )

        self.stats["total_proposals"] += 1

        logger.info(f"📝 Created merge proposal {proposal.proposal_id}")
        logger.debug(f"   Primary: {primary.display_name}")
        logger.debug(f"   Duplicates: {len(proposal.duplicates)}")

        return proposal

    def execute_merge(self, proposal: MergeProposal) -> MergeResult:
        """Fold every duplicate of a proposal into its primary."""
        primary = proposal.primary
        result = MergeResult(
            success=False,
            proposal_id=proposal.proposal_id,
            content_type=proposal.content_type,
            primary_id=record_identifier(primary.data),
        )

        logger.info(f"🔄 Executing merge proposal {proposal.proposal_id}")

        with self.error_handler.error_context(
            operation="merge_records",
            content_type=proposal.content_type.value if proposal.content_type else None,
            source_path=primary.source_label,
            record_id=result.primary_id,
            metadata={"record_ids": [
                record_identifier(record.data) or record.source_label
                for record in [primary] + proposal.duplicates
            ]},
        ):
            try:
                merged = copy.deepcopy(primary.data)
                conflicts = []

                for duplicate in proposal.duplicates:
                    for conflict in find_conflicts(merged, duplicate.data):
                        conflict["source"] = duplicate.source_label
                        conflicts.append(conflict)
                    merged = merge_records(merged, duplicate.data, self.config)
                    result.merged_ids.append(
                        record_identifier(duplicate.data) or duplicate.source_label
                    )

            except Exception as e:
                error = self.error_handler.handle_error(e, reraise=False)
                proposal.status = "failed"
                self.stats["failed_merges"] += 1
                result.errors.append(error.message)
                return result

        for conflict in conflicts:
            conflict["kept"] = get_path(merged, conflict["field"])

        proposal.status = "executed"
        result.success = True
        result.merged_record = merged
        result.conflicts = conflicts

        self.stats["successful_merges"] += 1
        self.stats["records_merged_away"] += len(proposal.duplicates)
        self.stats["conflicts"] += len(conflicts)

        logger.info(f"✅ Merged {len(proposal.duplicates)} records into {result.primary_id}")
        if conflicts:
            logger.warning(f"⚠️  {len(conflicts)} conflicting fields resolved heuristically "
                           f"for {result.primary_id}")

        return result

    def get_statistics(self) -> Dict[str, Any]:
        """Get merge executor statistics."""
        total_operations = self.stats["total_proposals"]
        success_rate = (self.stats["successful_merges"] / max(total_operations, 1)) * 100

        return {
            **self.stats,
            "success_rate": success_rate,
        }
