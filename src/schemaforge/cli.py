"""Command-line interface for SchemaForge.

This module provides the CLI commands for validating definition files
and inspecting the schemas derived from them.
"""

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from schemaforge import __version__
from schemaforge.application.services.definition_loader import (
    DefinitionLoader,
    list_definition_files,
    parse_definition_file,
)
from schemaforge.core.config import Settings, get_settings
from schemaforge.core.exceptions import DefinitionLoadError
from schemaforge.core.logging import configure_logging, get_logger
from schemaforge.domain.entities.definition_types import DefinitionKind, enum_values
from schemaforge.domain.entities.validation import ValidationReport, ValidationResult
from schemaforge.domain.services.report_builder import definition_name
from schemaforge.domain.services.validation_engine import ValidationEngine


@click.group()
@click.version_option(version=__version__, prog_name="SchemaForge")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Set log level (overrides SCHEMAFORGE_LOG_LEVEL)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "console"]),
    default=None,
    help="Set log format (overrides SCHEMAFORGE_LOG_FORMAT)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_format: str | None) -> None:
    """SchemaForge - validation engine for collection, function and RBAC definitions.

    Logs are written to stderr; reports and schemas to stdout.
    """
    settings = get_settings()
    overrides: dict[str, Any] = {}
    if log_level:
        overrides["log_level"] = log_level.upper()
    if log_format:
        overrides["log_format"] = log_format
    if overrides:
        settings = settings.model_copy(update=overrides)

    configure_logging(settings)
    ctx.obj = settings


def _expand_paths(paths: tuple[str, ...]) -> list[Path]:
    """Expand directories into their definition files (sorted, non-recursive)."""
    files: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(list_definition_files(path))
        else:
            files.append(path)
    return files


def _render_text(path: Path, report: ValidationReport) -> str:
    status = "valid" if report.valid else "invalid"
    lines = [
        f"{path}: {status} ({report.error_count} errors, {report.warning_count} warnings)"
    ]
    for finding in report.errors + report.warnings:
        lines.append(
            f"  {finding.severity.value:<7} {finding.code} at {finding.path}: {finding.message}"
        )
    for suggestion in report.suggestions:
        lines.append(f"  hint: {suggestion}")
    return "\n".join(lines)


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option(
    "--kind",
    type=click.Choice(enum_values(DefinitionKind)),
    default=DefinitionKind.COLLECTION.value,
    show_default=True,
    help="Kind of definition the files hold",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Report output format",
)
@click.option(
    "--references/--no-references",
    default=True,
    help="Check collection references across all given files",
)
@click.pass_obj
def validate(
    settings: Settings,
    paths: tuple[str, ...],
    kind: str,
    output_format: str,
    references: bool,
) -> None:
    """Validate definition files or directories of definition files.

    Collections given together are validated as one set: relationship
    targets must be among them and dependency cycles are reported.
    Exits with status 1 if any file has an error finding.
    """
    logger = get_logger(__name__)
    engine = ValidationEngine.create(settings)
    definition_kind = DefinitionKind(kind)

    parsed: dict[Path, Any] = {}
    reports: dict[Path, ValidationReport] = {}
    load_failures: dict[Path, str] = {}

    for path in _expand_paths(paths):
        try:
            parsed[path] = parse_definition_file(path)
        except DefinitionLoadError as e:
            load_failures[path] = str(e)

    # First file wins a name; later duplicates are validated on their own
    set_paths: dict[str, Path] = {}
    set_results: dict[str, ValidationResult] = {}
    known: list[str] | None = None
    if references and definition_kind == DefinitionKind.COLLECTION:
        for path, definition in parsed.items():
            name = definition_name(definition)
            if name and name not in set_paths:
                set_paths[name] = path
        known = list(set_paths)
        set_results = engine.validate_collections(
            {name: parsed[path] for name, path in set_paths.items()}
        )

    for path, definition in parsed.items():
        name = definition_name(definition)
        if name in set_results and set_paths[name] == path:
            result = set_results[name]
        else:
            result = engine.validate(definition_kind, definition, known)
        reports[path] = engine.build_report(definition, result.errors, definition_kind)

    failed = bool(load_failures) or any(not r.valid for r in reports.values())
    logger.info(
        "Validation finished",
        files=len(parsed) + len(load_failures),
        failed=sum(1 for r in reports.values() if not r.valid) + len(load_failures),
    )

    if output_format == "json":
        payload = [{"file": str(p), "loadError": msg} for p, msg in load_failures.items()]
        payload += [{"file": str(p), **r.to_dict()} for p, r in reports.items()]
        click.echo(json.dumps(payload, indent=2))
    else:
        for path, message in load_failures.items():
            click.echo(f"{path}: load failed: {message}")
        for path, report in reports.items():
            click.echo(_render_text(path, report))

    if failed:
        sys.exit(1)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--field", "field_name", default=None, help="Print only this field's schema")
@click.pass_obj
def schema(settings: Settings, path: str, field_name: str | None) -> None:
    """Print the instance-data JSON Schema derived from a collection file."""
    engine = ValidationEngine.create(settings)
    loader = DefinitionLoader(engine)

    try:
        definition = loader.load_definition(path, DefinitionKind.COLLECTION)
    except DefinitionLoadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if field_name is None:
        output = engine.generate_document_schema(definition)
    else:
        fields = definition["fields"]
        if field_name not in fields:
            raise click.BadParameter(
                f"Collection '{definition['collection']}' has no field '{field_name}'",
                param_hint="--field",
            )
        output = engine.project_field_schema(fields[field_name])

    click.echo(json.dumps(output, indent=2))


@cli.command()
@click.pass_obj
def info(settings: Settings) -> None:
    """Display SchemaForge configuration."""
    click.echo(f"""
SchemaForge v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:     {settings.environment}

Validation:
  Max Depth:       {settings.max_definition_depth}
  Endpoint Prefix: {settings.functions_endpoint_prefix}
  Regex Check:     {settings.regex_dialect_check}

Logging:
  Level:           {settings.log_level}
  Format:          {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `schemaforge` command is run
    or when using `python -m schemaforge`.
    """
    cli()


if __name__ == "__main__":
    main()
