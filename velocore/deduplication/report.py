"""
Duplicate Content Report

Renders detected duplicates, merge outcomes and record quality as Markdown.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Any, Optional, Union

from ..errors import OutputDirectoryError
from ..models import ContentType
from .completeness import completeness_band
from .content_processors import get_processor
from .core_engine import DuplicateCandidatePair
from .merge_proposals import MergeResult
from .similarity_scoring import parse_coordinates, haversine_km

logger = logging.getLogger(__name__)

BANDS = ("excellent", "good", "partial", "minimal")

TYPE_TITLES = {
    ContentType.COLS: "Cols",
    ContentType.NUTRITION: "Nutrition",
    ContentType.TRAINING: "Training",
}


def _cell(value: Any) -> str:
    """Table-safe text."""
    if value is None or value == "":
        return "-"
    return str(value).replace("|", "\\|").replace("\n", " ")


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_coordinates(value: Any) -> str:
    coords = parse_coordinates(value)
    if coords is None:
        return "n/a"
    return f"{coords[0]:.4f}, {coords[1]:.4f}"


class ReportGenerator:
    """Builds the Markdown duplicate report."""

    def __init__(self, title: str = "Duplicate Content Report", lowest_count: int = 10):
        self.title = title
        self.lowest_count = lowest_count
        self.processors = {content_type: get_processor(content_type) for content_type in ContentType}

    def render(
        self,
        pairs: List[DuplicateCandidatePair],
        merge_results: Optional[List[MergeResult]] = None,
        quality: Optional[Dict[ContentType, List[Dict[str, Any]]]] = None,
        generated_at: Optional[datetime] = None,
    ) -> str:
        """
        Render the report.

        Args:
            pairs: Duplicate pairs from every content type
            merge_results: Merge outcomes, adds a merge section when given
            quality: Per type list of ``{"id", "name", "source", "completeness",
                "missing"}`` entries, adds a quality section when given
            generated_at: Report timestamp, defaults to now

        Returns:
            Markdown text
        """
        generated_at = generated_at or datetime.now()
        lines = [
            f"# {self.title}",
            "",
            f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M')}",
            "",
        ]

        lines.extend(self._render_summary(pairs))

        type_order = list(ContentType)
        ordered = sorted(pairs, key=lambda p: (type_order.index(p.content_type), -p.similarity))

        for content_type in ContentType:
            type_pairs = [pair for pair in ordered if pair.content_type == content_type]
            lines.append(f"## {TYPE_TITLES[content_type]}")
            lines.append("")
            if not type_pairs:
                lines.append("_No duplicates found._")
                lines.append("")
                continue
            for number, pair in enumerate(type_pairs, 1):
                lines.extend(self._render_pair(number, pair))

        if merge_results is not None:
            lines.extend(self._render_merges(merge_results))

        if quality is not None:
            lines.extend(self._render_quality(quality))

        return "\n".join(lines).rstrip() + "\n"

    def write(self, path: Union[str, Path], pairs: List[DuplicateCandidatePair],
              **kwargs) -> Path:
        """Render the report and write it, creating parent directories."""
        path = Path(path)
        content = self.render(pairs, **kwargs)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise OutputDirectoryError(
                f"Cannot write report: {e}", path=str(path.parent), cause=e
            ) from e

        logger.info(f"📝 Report written to {path}")
        return path

    def _render_summary(self, pairs: List[DuplicateCandidatePair]) -> List[str]:
        lines = [
            "## Summary",
            "",
            "| Content type | Duplicate pairs |",
            "|--------------|-----------------|",
        ]
        for content_type in ContentType:
            count = sum(1 for pair in pairs if pair.content_type == content_type)
            lines.append(f"| {content_type.value} | {count} |")
        lines.append(f"| **Total** | **{len(pairs)}** |")
        lines.append("")
        return lines

    def _render_pair(self, number: int, pair: DuplicateCandidatePair) -> List[str]:
        a, b = pair.record_a, pair.record_b
        lines = [
            f"### {number}. {a.display_name} / {b.display_name}",
            "",
            f"- **IDs**: `{a.id or '-'}` / `{b.id or '-'}`",
            f"- **Sources**: `{a.source_label}` / `{b.source_label}`",
            f"- **Similarity**: {pair.similarity * 100:.1f}%",
            f"- **Reason**: {pair.reason or '-'}",
        ]

        processor = self.processors[pair.content_type]
        if pair.content_type == ContentType.COLS:
            lines.extend(self._render_col_details(pair, processor))
        else:
            for field in processor.get_report_fields():
                value_a = processor.resolve_field(a.data, field)
                value_b = processor.resolve_field(b.data, field)
                lines.append(f"- **{field.replace('_', ' ').capitalize()}**: "
                             f"{_cell(value_a)} / {_cell(value_b)}")

        lines.append("")
        return lines

    def _render_col_details(self, pair: DuplicateCandidatePair, processor) -> List[str]:
        a, b = pair.record_a.data, pair.record_b.data
        lines = []

        altitude_a = processor.resolve_field(a, "altitude")
        altitude_b = processor.resolve_field(b, "altitude")
        if isinstance(altitude_a, (int, float)) and isinstance(altitude_b, (int, float)):
            delta = abs(altitude_a - altitude_b)
            lines.append(f"- **Altitude**: {_format_number(altitude_a)} m / "
                         f"{_format_number(altitude_b)} m (delta {_format_number(delta)} m)")
        else:
            lines.append(f"- **Altitude**: {_cell(altitude_a)} / {_cell(altitude_b)}")

        coords_a = processor.get_coordinates(a)
        coords_b = processor.get_coordinates(b)
        lines.append(f"- **Coordinates**: {_format_coordinates(coords_a)} / "
                     f"{_format_coordinates(coords_b)}")

        distance = pair.distance_km
        if distance is None:
            parsed_a, parsed_b = parse_coordinates(coords_a), parse_coordinates(coords_b)
            if parsed_a and parsed_b:
                distance = haversine_km(*parsed_a, *parsed_b)
        lines.append(f"- **Distance**: {distance:.2f} km" if distance is not None
                     else "- **Distance**: n/a")
        return lines

    def _render_merges(self, merge_results: List[MergeResult]) -> List[str]:
        lines = ["## Merges", ""]
        if not merge_results:
            lines.extend(["_No records merged._", ""])
            return lines

        lines.append("| Content type | Primary | Merged away | Conflicts | Status |")
        lines.append("|--------------|---------|-------------|-----------|--------|")
        for result in merge_results:
            content_type = result.content_type.value if result.content_type else "-"
            status = "merged" if result.success else "failed"
            lines.append(
                f"| {content_type} | {_cell(result.primary_id)} | "
                f"{_cell(', '.join(result.merged_ids))} | {len(result.conflicts)} | {status} |"
            )
        lines.append("")

        with_conflicts = [result for result in merge_results if result.conflicts or result.errors]
        if with_conflicts:
            lines.append("### Conflicts")
            lines.append("")
            lines.append("Conflicting values were resolved automatically; review them before publishing.")
            lines.append("")
            for result in with_conflicts:
                lines.append(f"**{_cell(result.primary_id)}**")
                lines.append("")
                for conflict in result.conflicts:
                    lines.append(
                        f"- `{conflict['field']}`: kept {_cell(conflict.get('kept'))}, "
                        f"values {_cell(conflict['primary'])} / {_cell(conflict['duplicate'])}"
                    )
                for error in result.errors:
                    lines.append(f"- error: {_cell(error)}")
                lines.append("")

        return lines

    def _render_quality(self, quality: Dict[ContentType, List[Dict[str, Any]]]) -> List[str]:
        lines = ["## Content quality", ""]

        for content_type in ContentType:
            entries = quality.get(content_type)
            if entries is None:
                continue

            lines.append(f"### {TYPE_TITLES[content_type]}")
            lines.append("")
            if not entries:
                lines.extend(["_No records._", ""])
                continue

            counts = {band: 0 for band in BANDS}
            for entry in entries:
                counts[completeness_band(entry["completeness"])] += 1
            average = sum(entry["completeness"] for entry in entries) / len(entries)

            lines.append(f"- **Records**: {len(entries)}")
            lines.append(f"- **Average completeness**: {average:.0f}%")
            for band in BANDS:
                lines.append(f"- **{band.capitalize()}**: {counts[band]}")
            lines.append("")

            lowest = sorted(entries, key=lambda entry: entry["completeness"])[:self.lowest_count]
            lines.append("| Name | ID | Completeness | Missing fields |")
            lines.append("|------|----|--------------|----------------|")
            for entry in lowest:
                lines.append(
                    f"| {_cell(entry.get('name'))} | {_cell(entry.get('id'))} | "
                    f"{entry['completeness']}% | {_cell(', '.join(entry.get('missing', [])))} |"
                )
            lines.append("")

        return lines
