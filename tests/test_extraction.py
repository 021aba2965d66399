"""Tests for record extraction from JSON and JavaScript data files."""

import json
import pytest

from velocore.errors import ErrorHandler
from velocore.models import ContentType
from velocore.deduplication.extraction import ContentRecord, RecordExtractor


@pytest.fixture
def extractor():
    return RecordExtractor(ErrorHandler())


def write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    if not isinstance(content, str):
        content = json.dumps(content)
    path.write_text(content, encoding="utf-8")
    return path


class TestContentRecord:
    """Test record provenance accessors."""

    def test_accessors(self):
        record = ContentRecord(
            data={"id": "galibier", "name": "Col du Galibier", "slug": "col-du-galibier"},
            content_type=ContentType.COLS,
            source_path="data/cols.json",
            position=3,
        )

        assert record.id == "galibier"
        assert record.name == "Col du Galibier"
        assert record.slug == "col-du-galibier"
        assert record.source_label == "data/cols.json[3]"
        assert record.display_name == "Col du Galibier"

    def test_display_name_fallback(self):
        record = ContentRecord(data={}, content_type=ContentType.COLS, source_path="x.json")
        assert record.display_name == "x.json[0]"


class TestJsonExtraction:
    """Test JSON document shapes."""

    def test_top_level_array(self, extractor, tmp_path):
        path = write(tmp_path / "cols.json", [
            {"id": "a", "name": "Col A"},
            {"id": "b", "name": "Col B"},
        ])

        records = extractor.extract_file(path, ContentType.COLS)

        assert [r.id for r in records] == ["a", "b"]
        assert [r.position for r in records] == [0, 1]
        assert all(r.content_type == ContentType.COLS for r in records)
        assert records[0].source_path == str(path)

    def test_single_record_object(self, extractor, tmp_path):
        """An object with a name and an id is one record."""
        path = write(tmp_path / "plan.json", {
            "id": "base", "name": "Base Plan", "weeks": [{"week": 1}],
        })

        records = extractor.extract_file(path, ContentType.TRAINING)

        assert len(records) == 1
        assert records[0].data["weeks"] == [{"week": 1}]

    def test_first_array_property(self, extractor, tmp_path):
        path = write(tmp_path / "recipes.json", {
            "version": 2,
            "recipes": [{"id": "r1", "name": "Rice Cake"}],
            "tags": ["a", "b"],
        })

        records = extractor.extract_file(path, ContentType.NUTRITION)

        assert [r.id for r in records] == ["r1"]

    def test_no_array_logs_error(self, extractor, tmp_path):
        """A document without records yields nothing and is counted as an error."""
        path = write(tmp_path / "meta.json", {"version": 2})

        assert extractor.extract_file(path, ContentType.COLS) == []
        stats = extractor.error_handler.get_error_statistics()
        assert stats["error_counts"] == {"ExtractionError": 1}
        assert extractor.stats["files_failed"] == 1

    def test_invalid_json(self, extractor, tmp_path):
        """Unparseable files are logged and skipped, never raised."""
        path = write(tmp_path / "broken.json", "{ not json")

        assert extractor.extract_file(path, ContentType.COLS) == []
        assert extractor.error_handler.get_error_statistics()["total_errors"] == 1

    def test_missing_file(self, extractor, tmp_path):
        assert extractor.extract_file(tmp_path / "missing.json", ContentType.COLS) == []
        assert extractor.stats["files_failed"] == 1

    def test_numeric_ids_and_derived_slug(self, extractor, tmp_path):
        path = write(tmp_path / "cols.json", [{"id": 42, "name": "Col du Télégraphe"}])

        record = extractor.extract_file(path, ContentType.COLS)[0]

        assert record.id == "42"
        assert record.slug == "col-du-telegraphe"

    def test_invalid_records_skipped(self, extractor, tmp_path):
        """Records that fail validation are logged and the rest kept."""
        path = write(tmp_path / "cols.json", [
            "not an object",
            {"id": "ok", "name": "Valid"},
            {"id": "bad", "name": ["not", "a", "string"]},
            {"id": "worse", "altitude": True},
        ])

        records = extractor.extract_file(path, ContentType.COLS)

        assert [r.id for r in records] == ["ok"]
        assert [r.position for r in records] == [1]
        assert extractor.stats["records_rejected"] == 3
        assert extractor.error_handler.get_error_statistics()["error_counts"] == {
            "RecordValidationError": 3
        }

    def test_altitude_strings_coerced(self, extractor, tmp_path):
        path = write(tmp_path / "cols.json", [{"id": "a", "name": "A", "altitude": "2758 m"}])

        assert extractor.extract_file(path, ContentType.COLS)[0].data["altitude"] == 2758

    @pytest.mark.parametrize("text,expected", [
        ("2,758m", 2758),
        ("2\u00a0758 m", 2758),
        ("2 758 m", 2758),
        ("1,234.5 m", 1234.5),
        ("2758,5", 2758.5),
        ("-12", -12),
    ])
    def test_thousands_separators(self, extractor, tmp_path, text, expected):
        """A separator before exactly three digits groups thousands."""
        path = write(tmp_path / "cols.json", [{"id": "stelvio", "name": "Stelvio", "elevation": text}])

        assert extractor.extract_file(path, ContentType.COLS)[0].data["elevation"] == expected

    @pytest.mark.parametrize("text", ["", "   ", "very high"])
    def test_unreadable_height_keeps_record(self, extractor, tmp_path, text):
        """A blank or non-numeric height drops the field, not the col."""
        path = write(tmp_path / "cols.json", [
            {"id": "galibier", "name": "Col du Galibier", "altitude": text, "country": "France"},
        ])

        records = extractor.extract_file(path, ContentType.COLS)

        assert len(records) == 1
        assert "altitude" not in records[0].data
        assert records[0].data["country"] == "France"
        assert extractor.stats["records_rejected"] == 0

    def test_non_numeric_height_logged(self, extractor, tmp_path, caplog):
        path = write(tmp_path / "cols.json", [{"id": "a", "name": "A", "altitude": "very high"}])

        with caplog.at_level("WARNING", logger="velocore.models"):
            extractor.extract_file(path, ContentType.COLS)

        assert "Ignoring non-numeric height 'very high'" in caplog.text

    def test_unknown_fields_kept(self, extractor, tmp_path):
        path = write(tmp_path / "cols.json", [
            {"id": "a", "name": "A", "description": {"fr": "Texte", "en": "Text"}},
        ])

        record = extractor.extract_file(path, ContentType.COLS)[0]

        assert record.data["description"] == {"fr": "Texte", "en": "Text"}


class TestJavaScriptExtraction:
    """Test literal evaluation of JS data modules."""

    def extract(self, extractor, tmp_path, source, content_type=ContentType.COLS):
        path = write(tmp_path / "data.js", source)
        return [r.data for r in extractor.extract_file(path, content_type)]

    def test_export_default_array(self, extractor, tmp_path):
        records = self.extract(extractor, tmp_path, """
            export default [
              { id: 'galibier', name: "Col du Galibier", altitude: 2642 },
            ];
        """)

        assert records == [
            {"id": "galibier", "name": "Col du Galibier", "altitude": 2642, "slug": "col-du-galibier"}
        ]

    def test_export_default_identifier(self, extractor, tmp_path):
        records = self.extract(extractor, tmp_path, """
            const other = [{ id: 'wrong', name: 'Wrong' }];
            const cols = [{ id: 'right', name: 'Right' }];
            export default cols;
        """)

        assert [r["id"] for r in records] == ["right"]

    def test_module_exports(self, extractor, tmp_path):
        records = self.extract(extractor, tmp_path, """
            const helper = require('./helper');
            const recipes = [{ id: 'r1', name: 'Rice Cake' }];
            module.exports = recipes;
        """, ContentType.NUTRITION)

        assert [r["id"] for r in records] == ["r1"]

    def test_module_exports_object(self, extractor, tmp_path):
        """An exported object resolves to its first array property."""
        records = self.extract(extractor, tmp_path, """
            const plans = [{ id: 'p1', name: 'Plan One' }];
            module.exports = { version: 1, plans };
        """, ContentType.TRAINING)

        assert [r["id"] for r in records] == ["p1"]

    def test_exported_const(self, extractor, tmp_path):
        records = self.extract(extractor, tmp_path, """
            const draft = [{ id: 'draft', name: 'Draft' }];
            export const additionalCols = [{ id: 'exported', name: 'Exported' }];
        """)

        assert [r["id"] for r in records] == ["exported"]

    def test_first_top_level_array(self, extractor, tmp_path):
        records = self.extract(extractor, tmp_path, """
            var first = [{ id: 'first', name: 'First' }];
            var second = [{ id: 'second', name: 'Second' }];
        """)

        assert [r["id"] for r in records] == ["first"]

    def test_literal_values(self, extractor, tmp_path):
        """Numbers, signs, booleans, null, templates and concatenation."""
        records = self.extract(extractor, tmp_path, """
            export default [{
              id: "stelvio",
              name: 'Passo ' + "dello " + 'Stelvio',
              "avg-gradient": 7.4,
              coordinates: [46.5287, 10.4532],
              low: -12,
              plus: +3,
              featured: true,
              archived: false,
              note: null,
              description: `Forty-eight hairpins`,
            }];
        """)

        assert records[0] == {
            "id": "stelvio",
            "name": "Passo dello Stelvio",
            "avg-gradient": 7.4,
            "coordinates": [46.5287, 10.4532],
            "low": -12,
            "plus": 3,
            "featured": True,
            "archived": False,
            "note": None,
            "description": "Forty-eight hairpins",
            "slug": "passo-dello-stelvio",
        }

    def test_non_literals_dropped(self, extractor, tmp_path):
        """Functions, calls, identifiers, undefined and spreads do not survive."""
        records = self.extract(extractor, tmp_path, """
            const base = { region: 'Alpes' };
            export default [
              {
                id: 'a',
                name: 'A',
                render: () => null,
                created: new Date(),
                ref: base,
                missing: undefined,
                label: `Col ${base.region}`,
                tags: ['x', someTag, 'y'],
              },
              ...others,
            ];
        """)

        assert records == [{"id": "a", "name": "A", "tags": ["x", "y"], "slug": "a"}]

    def test_no_array_found(self, extractor, tmp_path):
        records = self.extract(extractor, tmp_path, "export const VERSION = 3;")

        assert records == []
        assert extractor.error_handler.get_error_statistics()["error_counts"] == {
            "ExtractionError": 1
        }

    def test_parse_error(self, extractor, tmp_path):
        """Broken JavaScript is logged and skipped."""
        records = self.extract(extractor, tmp_path, "export default [{ id: 'a', name: ")

        assert records == []
        assert extractor.stats["files_failed"] == 1


class TestExtractPath:
    """Test directory walking."""

    def test_directory(self, extractor, tmp_path):
        """Data files are read in name order; index.json and other files are skipped."""
        write(tmp_path / "b.json", [{"id": "b", "name": "B"}])
        write(tmp_path / "a.js", "export default [{ id: 'a', name: 'A' }];")
        write(tmp_path / "index.json", [{"id": "index", "name": "Index"}])
        write(tmp_path / "notes.txt", "not data")
        write(tmp_path / "nested" / "c.json", [{"id": "c", "name": "C"}])

        records = extractor.extract_path(tmp_path, ContentType.COLS)

        assert [r.id for r in records] == ["a", "b"]

    def test_recursive_directory(self, extractor, tmp_path):
        write(tmp_path / "b.json", [{"id": "b", "name": "B"}])
        write(tmp_path / "nested" / "c.json", [{"id": "c", "name": "C"}])

        records = extractor.extract_path(tmp_path, ContentType.COLS, recursive=True)

        assert sorted(r.id for r in records) == ["b", "c"]

    def test_single_file(self, extractor, tmp_path):
        path = write(tmp_path / "cols.json", [{"id": "a", "name": "A"}])

        assert [r.id for r in extractor.extract_path(path, ContentType.COLS)] == ["a"]

    def test_missing_source(self, extractor, tmp_path):
        """Sources that do not exist are skipped without an error."""
        assert extractor.extract_path(tmp_path / "nowhere", ContentType.COLS) == []
        assert extractor.error_handler.get_error_statistics()["total_errors"] == 0
