"""Command-line interface for the content deduplication pipeline."""

import sys
import json
import argparse
from typing import List, Optional

from ...config import ConfigManager
from ...errors import BaseContentError, ErrorHandler
from ...logging_config import setup_logging
from ...models import DeduplicationConfig
from ..pipeline import DeduplicationPipeline
from .ui_components import UIComponents


def build_config(args) -> DeduplicationConfig:
    """Load configuration and apply command line overrides."""
    config = ConfigManager(config_path=args.config).load()

    output_updates = {}
    if getattr(args, "report", None):
        output_updates["report_path"] = args.report
    if getattr(args, "output", None):
        output_updates["output_dir"] = args.output
    if getattr(args, "group_by_category", False):
        output_updates["group_by_category"] = True

    if output_updates:
        config = config.model_copy(
            update={"output": config.output.model_copy(update=output_updates)}
        )
    return config


def configure_logging(args, config: DeduplicationConfig):
    setup_logging(
        format=args.log_format or config.logging.format,
        level="DEBUG" if args.verbose else config.logging.level,
        log_file=config.logging.file,
    )


def detect_duplicates(args, ui: UIComponents) -> int:
    """Report duplicates without touching the data."""
    config = build_config(args)
    configure_logging(args, config)

    result = DeduplicationPipeline(config).run("detect")

    ui.console.print(ui.create_summary_table(result))
    if result.pairs:
        ui.console.print(ui.create_pairs_table(result.pairs))
    else:
        ui.console.print("[green]No duplicates found.[/green]")
    ui.console.print(ui.create_result_panel(result))
    return 0


def merge_duplicates(args, ui: UIComponents) -> int:
    """Merge duplicates and write the canonical dataset."""
    config = build_config(args)
    configure_logging(args, config)

    result = DeduplicationPipeline(config).run("merge")

    ui.console.print(ui.create_summary_table(result))
    if result.merge_results:
        ui.console.print(ui.create_merge_table(result.merge_results))
    ui.console.print(ui.create_result_panel(result))
    return 0


def show_completeness(args, ui: UIComponents) -> int:
    """Print completeness per content type."""
    config = build_config(args)
    configure_logging(args, config)

    pipeline = DeduplicationPipeline(config)
    records = pipeline.extract()
    quality = pipeline.assess_quality({
        content_type: [record.data for record in type_records]
        for content_type, type_records in records.items()
    })

    ui.console.print(ui.create_completeness_table(quality))
    return 0


def generate_config(args, ui: UIComponents) -> int:
    """Generate a configuration template."""
    config_manager = ConfigManager(load_env_file=False)

    if args.output:
        config_manager.save_template(args.output)
        ui.console.print(f"✅ Configuration template saved to: {args.output}")
    else:
        # Plain stdout so the output can be redirected to a file
        print(json.dumps(ConfigManager.DEFAULT_CONFIG, indent=2))

    return 0


COMMANDS = {
    "detect": detect_duplicates,
    "merge": merge_duplicates,
    "completeness": show_completeness,
    "generate-config": generate_config,
}


def create_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-c", "--config", help="Path to configuration file (JSON)")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    common.add_argument(
        "--log-format", choices=["text", "json"], help="Log format (default: from config)"
    )

    parser = argparse.ArgumentParser(
        prog="velocore-dedupe",
        description="Velocore content deduplication - find and merge duplicate cols, recipes and training plans",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Report duplicates using the default source paths
  python -m velocore.deduplication detect

  # Merge duplicates and write the canonical dataset grouped by category
  python -m velocore.deduplication merge --output output/content --group-by-category

  # Check how complete the content is
  python -m velocore.deduplication completeness -c dedupe.json

  # Generate configuration template
  python -m velocore.deduplication generate-config > dedupe.json
""",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    detect_parser = subparsers.add_parser(
        "detect", parents=[common], help="Report duplicate content"
    )
    detect_parser.add_argument("--report", help="Report path (default: from config)")

    merge_parser = subparsers.add_parser(
        "merge", parents=[common], help="Merge duplicates and write the canonical dataset"
    )
    merge_parser.add_argument("--output", help="Output directory (default: from config)")
    merge_parser.add_argument("--report", help="Report path (default: from config)")
    merge_parser.add_argument(
        "--group-by-category", action="store_true",
        help="File records under category subdirectories",
    )

    subparsers.add_parser(
        "completeness", parents=[common], help="Show record completeness per content type"
    )

    config_parser = subparsers.add_parser(
        "generate-config", parents=[common], help="Generate configuration template"
    )
    config_parser.add_argument("-o", "--output", help="Save to file (default: print to stdout)")

    return parser


def main(argv: Optional[List[str]] = None, ui: Optional[UIComponents] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    ui = ui or UIComponents()

    try:
        return COMMANDS[args.command](args, ui)
    except KeyboardInterrupt:
        ui.console.print("\n⚠️  Interrupted by user")
        return 1
    except BaseContentError as e:
        ui.show_error(ErrorHandler().create_user_friendly_message(e))
        return 1
    except Exception as e:
        ui.show_error(f"❌ Error: {e}")
        if args.verbose:
            ui.console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
