"""
velocore - content tooling for the cycling platform data files.

The deduplication package extracts cols, recipes and training plans from the
platform's JSON/JS data files, detects duplicate records, merges them and
writes a canonical dataset with a Markdown report.
"""

__version__ = "1.0.0"
