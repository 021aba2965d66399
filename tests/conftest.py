"""Test configuration and fixtures for the content deduplication tests."""

import os
import json
import pytest
from pathlib import Path
from typing import Dict, Any, List
from unittest.mock import patch

from velocore.models import (
    ContentType,
    ContentSourceConfig,
    DeduplicationConfig,
    OutputConfig,
)
from velocore.deduplication.extraction import ContentRecord


COLS_JS = """
const cols = [
  {
    id: "passo-dello-stelvio",
    name: "Passo dello Stelvio",
    altitude: 2758,
    coordinates: [46.5287, 10.4532],
    images: ["x.jpg"],
    description: `A longer description of the Stelvio climb.`,
    onClick: () => null,
  },
  { id: 'mont-ventoux', name: 'Mont Ventoux', elevation: 1909, coordinates: [44.1741, 5.2788] },
];

export default cols;
"""


@pytest.fixture(autouse=True)
def clean_env():
    """Keep VELOCORE_* variables from the real environment out of tests."""
    env = {key: value for key, value in os.environ.items() if not key.startswith("VELOCORE_")}
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.fixture
def stelvio_a() -> Dict[str, Any]:
    """English-named Stelvio record."""
    return {
        "id": "stelvio-pass",
        "name": "Stelvio Pass",
        "altitude": 2758,
        "coordinates": [46.5286, 10.4531],
    }


@pytest.fixture
def stelvio_b() -> Dict[str, Any]:
    """Italian-named Stelvio record with an image."""
    return {
        "id": "passo-dello-stelvio",
        "name": "Passo dello Stelvio",
        "altitude": 2758,
        "coordinates": [46.5287, 10.4532],
        "images": ["x.jpg"],
    }


@pytest.fixture
def sample_cols(stelvio_a, stelvio_b) -> List[Dict[str, Any]]:
    """A handful of cols, one duplicate pair among them."""
    return [
        stelvio_a,
        {
            "id": "col-du-galibier",
            "name": "Col du Galibier",
            "altitude": 2642,
            "coordinates": [45.0640, 6.4078],
            "region": "Alpes",
        },
        stelvio_b,
        {
            "id": "mont-ventoux",
            "name": "Mont Ventoux",
            "elevation": 1909,
            "coordinates": [44.1741, 5.2788],
        },
    ]


@pytest.fixture
def sample_recipes() -> List[Dict[str, Any]]:
    """Recipes whose names are only half similar."""
    return [
        {"id": "oat-bars", "name": "Oat Bars", "category": "snack"},
        {"id": "oat-milk", "name": "Oat Milk", "category": "drink"},
    ]


@pytest.fixture
def make_records():
    """Build ContentRecords from plain dicts."""
    def _make(content_type: ContentType, items: List[Dict[str, Any]],
              source_path: str = "test.json") -> List[ContentRecord]:
        return [
            ContentRecord(data=item, content_type=content_type,
                          source_path=source_path, position=position)
            for position, item in enumerate(items)
        ]

    return _make


def _write_json(path: Path, data: Any):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


@pytest.fixture
def data_tree(tmp_path) -> Path:
    """A platform checkout with cols, nutrition and training data files.

    Contains one duplicate col pair (name + location), one duplicate recipe
    pair (same id) and one unparseable file.
    """
    root = tmp_path / "platform"

    cols_dir = root / "server" / "data" / "cols" / "enriched"
    _write_json(cols_dir / "stelvio-pass.json", {
        "id": "stelvio-pass",
        "name": "Stelvio Pass",
        "altitude": 2758,
        "coordinates": [46.5286, 10.4531],
    })
    _write_json(cols_dir / "galibier.json", {
        "id": "col-du-galibier",
        "name": "Col du Galibier",
        "altitude": 2642,
        "coordinates": [45.0640, 6.4078],
        "region": "Alpes",
    })
    (cols_dir / "broken.json").write_text("{ not json", encoding="utf-8")
    _write_json(cols_dir / "index.json", {"items": [{"id": "ignored", "name": "Ignored"}]})

    js_dir = root / "src" / "data" / "cols"
    js_dir.mkdir(parents=True)
    (js_dir / "cols.js").write_text(COLS_JS, encoding="utf-8")

    _write_json(root / "server" / "data" / "nutrition" / "recipes" / "recipes.json", {
        "recipes": [
            {"id": "oat-bars", "name": "Oat Bars", "category": "snack"},
            {"id": "oat-milk", "name": "Oat Milk", "category": "drink"},
        ]
    })
    _write_json(root / "src" / "data" / "nutrition" / "energy.json", [
        {"id": "energy-balls", "name": "Energy Balls", "ingredients": ["dates", "oats"]},
        {"id": "energy-balls", "name": "Energy Balls (v2)"},
    ])

    _write_json(root / "server" / "data" / "training" / "plans.json", {
        "id": "base-beginner",
        "name": "Base Plan Beginner",
        "level": "beginner",
        "weeks": [1, 2],
    })

    return root


@pytest.fixture
def source_paths() -> Dict[str, Dict[str, Any]]:
    """Source configuration matching data_tree."""
    return {
        "cols": {
            "paths": ["server/data/cols/enriched", "src/data/cols"],
            "location_threshold": 0.95,
        },
        "nutrition": {
            "paths": ["server/data/nutrition/recipes", "src/data/nutrition"],
        },
        "training": {
            "paths": ["server/data/training", "src/data/training"],
        },
    }


@pytest.fixture
def pipeline_config(data_tree, source_paths) -> DeduplicationConfig:
    """Configuration reading data_tree and writing inside it."""
    return DeduplicationConfig(
        root_dir=str(data_tree),
        sources={
            ContentType(name): ContentSourceConfig(**settings)
            for name, settings in source_paths.items()
        },
        output=OutputConfig(
            output_dir="output/content",
            report_path="docs/DUPLICATE_CONTENT_REPORT.md",
        ),
    )


@pytest.fixture
def config_file(tmp_path, data_tree, source_paths) -> Path:
    """JSON config file pointing at data_tree."""
    path = tmp_path / "dedupe.json"
    _write_json(path, {"root_dir": str(data_tree), "sources": source_paths})
    return path
