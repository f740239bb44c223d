"""Command-line interface for cachegroup-schema."""

from cachegroup_schema.ui.cli import CLIError, build_parser, run_cli

__all__ = ["CLIError", "build_parser", "run_cli"]
