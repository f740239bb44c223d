"""Command-line interface router for cachegroup-schema."""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from cachegroup_schema.config import (
    ConfigLoadError,
    ConfigValidationError,
    load_config,
    redact_config,
)
from cachegroup_schema.constants import STATE_SCHEMA_VERSIONS
from cachegroup_schema.domain.errors import (
    MalformedUpgradeInputError,
    MissingUpgradeStepError,
    SchemaDefinitionError,
    UnsupportedDowngradeError,
    UpgradeContractError,
)
from cachegroup_schema.observability import configure_structlog, correlation_scope, setup_logging
from cachegroup_schema.observability.logging import shutdown_logging
from cachegroup_schema.schema import AttributeRegistry, replication_group_registry
from cachegroup_schema.upgrade import replication_group_upgrade_chain


class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    def __init__(self, message: str, exit_code: int = 2) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="cachegroup-schema",
        description=(
            "cachegroup-schema: replication group attribute schema and state upgrades.\n\n"
            "Common workflows:\n"
            "  cachegroup-schema describe               Print the current schema\n"
            "  cachegroup-schema validate group.yaml    Validate a configuration\n"
            "  cachegroup-schema upgrade state.json --from 1\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to engine TOML config (default: ./cachegroup.toml if present).",
    )
    common.add_argument(
        "--log-level",
        default=None,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Override observability.log_level.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    describe_parser = subparsers.add_parser(
        "describe",
        parents=[common],
        help="Print a schema version",
    )
    describe_parser.add_argument("--version", type=int, default=None, dest="schema_version")
    describe_parser.add_argument("--format", choices=("yaml", "json"), default="yaml")
    describe_parser.set_defaults(handler=_cmd_describe)

    validate_parser = subparsers.add_parser(
        "validate",
        parents=[common],
        help="Validate a configuration file (YAML or JSON)",
    )
    validate_parser.add_argument("path")
    validate_parser.add_argument("--version", type=int, default=None, dest="schema_version")
    validate_parser.set_defaults(handler=_cmd_validate)

    normalize_parser = subparsers.add_parser(
        "normalize",
        parents=[common],
        help="Validate, then print the canonical form of a configuration file",
    )
    normalize_parser.add_argument("path")
    normalize_parser.add_argument("--version", type=int, default=None, dest="schema_version")
    normalize_parser.add_argument(
        "--defaults",
        action="store_true",
        default=False,
        help="Fill static defaults for unset optional attributes.",
    )
    normalize_parser.set_defaults(handler=_cmd_normalize)

    upgrade_parser = subparsers.add_parser(
        "upgrade",
        parents=[common],
        help="Upgrade a persisted state snapshot to a newer schema version",
        description=(
            "Upgrade a persisted state snapshot.\n\n"
            "Examples:\n"
            "  cachegroup-schema upgrade state.json --from 1\n"
            "  cachegroup-schema upgrade state.json --from 1 --to 2 --unredacted\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    upgrade_parser.add_argument("path")
    upgrade_parser.add_argument("--from", type=int, required=True, dest="from_version")
    upgrade_parser.add_argument("--to", type=int, default=None, dest="to_version")
    upgrade_parser.add_argument(
        "--unredacted",
        action="store_true",
        default=False,
        help="Print sensitive attribute values instead of redacting them.",
    )
    upgrade_parser.set_defaults(handler=_cmd_upgrade)

    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration (redacted)",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    configure_structlog()
    try:
        config = _load_effective_config(namespace)
        handle = setup_logging(config["observability"], run_id=uuid.uuid4().hex)
        try:
            with correlation_scope(command=namespace.command):
                result = handler(namespace, config)
        finally:
            shutdown_logging(handle)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_describe(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    registry = _registry(args, config)
    payload = registry.schema.to_dict()
    if args.format == "json":
        _emit_json(payload)
    else:
        sys.stdout.write(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))
    return 0


def _cmd_validate(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    registry = _registry(args, config)
    document = _require_mapping(_load_document(args.path), args.path)
    report = registry.validate(document)
    _emit_json(report.to_dict())
    return 0 if report.is_valid else 1


def _cmd_normalize(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    registry = _registry(args, config)
    document = _require_mapping(_load_document(args.path), args.path)
    report = registry.validate(document)
    if not report.is_valid:
        _emit_json(report.to_dict())
        return 1

    normalized = registry.normalize(document)
    if args.defaults or config["engine"]["apply_defaults"]:
        normalized = registry.apply_defaults(normalized)
    if config["observability"]["redact_secrets"]:
        normalized = registry.redact(normalized)
    _emit_json({"schema_version": registry.version, "config": _plain(normalized)})
    return 0


def _cmd_upgrade(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    target = args.to_version
    if target is None:
        target = config["engine"]["target_state_version"]
    document = _load_document(args.path)
    if document is not None and not isinstance(document, Mapping):
        raise CLIError(f"state file must hold a mapping: {args.path}")

    chain = replication_group_upgrade_chain()
    try:
        upgraded = chain.upgrade_raw(document, args.from_version, target)
    except (
        UnsupportedDowngradeError,
        MissingUpgradeStepError,
        MalformedUpgradeInputError,
        UpgradeContractError,
    ) as exc:
        raise CLIError(f"upgrade failed: {exc}", exit_code=3) from exc

    if not args.unredacted:
        upgraded = _registry_for_version(target).redact(upgraded)
    _emit_json({"from_version": args.from_version, "to_version": target, "state": upgraded})
    return 0


def _cmd_config(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    _emit_json({"command": "config", "config": redact_config(config)})
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, object] = {}
    if args.log_level is not None:
        overrides["observability.log_level"] = args.log_level

    try:
        return load_config(args.config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _registry(args: argparse.Namespace, config: Mapping[str, Any]) -> AttributeRegistry:
    version = args.schema_version
    if version is None:
        version = config["engine"]["target_state_version"]
    return _registry_for_version(version)


def _registry_for_version(version: int) -> AttributeRegistry:
    try:
        return replication_group_registry(version)
    except SchemaDefinitionError as exc:
        known = ", ".join(str(item) for item in STATE_SCHEMA_VERSIONS)
        raise CLIError(f"unknown schema version {version}; known versions: {known}") from exc


def _load_document(path_arg: str) -> object:
    path = Path(path_arg).expanduser()
    try:
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise CLIError(f"input file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise CLIError(f"invalid YAML/JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise CLIError(f"unable to read input file {path}: {exc}") from exc


def _require_mapping(document: object, path_arg: str) -> dict[str, object]:
    if not isinstance(document, Mapping):
        raise CLIError(f"configuration file must hold a mapping: {path_arg}")
    return dict(document)


def _plain(value: object) -> object:
    # NullableBool and other str subclasses serialize as plain strings.
    if isinstance(value, str):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_plain(item) for item in value)  # type: ignore[type-var]
    return value


__all__ = ["CLIError", "build_parser", "run_cli"]
