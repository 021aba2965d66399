"""
Command-line interface for the Velocore deduplication pipeline.

Argparse subcommands with Rich tables for run summaries.
"""

from .main import main, create_parser
from .ui_components import UIComponents

__all__ = [
    'main',
    'create_parser',
    'UIComponents',
]
