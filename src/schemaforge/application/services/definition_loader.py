"""Definition loader for JSON and YAML definition files.

Reads definition files from disk, validates them through a ValidationEngine
and returns the parsed mappings. A file that cannot be parsed, or that has
error findings, raises DefinitionLoadError carrying the validation report.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from schemaforge.core.exceptions import DefinitionLoadError
from schemaforge.core.logging import LoggingContext, get_logger
from schemaforge.domain.entities.definition_types import DefinitionKind
from schemaforge.domain.entities.validation import ValidationReport
from schemaforge.domain.services.report_builder import definition_name
from schemaforge.domain.services.validation_engine import ValidationEngine

logger = get_logger(__name__)

DEFINITION_SUFFIXES = (".json", ".yaml", ".yml")


def parse_definition_file(path: Path) -> Any:
    """Parse a definition file according to its suffix.

    Raises:
        DefinitionLoadError: If the file is missing, has an unsupported suffix
            or does not parse.
    """
    if not path.is_file():
        raise DefinitionLoadError("Definition file not found", path=str(path))

    suffix = path.suffix.lower()
    if suffix not in DEFINITION_SUFFIXES:
        raise DefinitionLoadError(f"Unsupported definition file type '{suffix}'", path=str(path))

    try:
        content = path.read_text(encoding="utf-8")
        if suffix == ".json":
            return json.loads(content)
        return yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
        raise DefinitionLoadError(f"Invalid {suffix[1:].upper()}: {e}", path=str(path)) from e


def list_definition_files(directory: Path) -> list[Path]:
    """List definition files directly inside a directory, sorted by name."""
    return sorted(
        p
        for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in DEFINITION_SUFFIXES
    )


class DefinitionLoader:
    """Loads and validates definition files.

    Parsed definitions are cached per resolved path for the lifetime of the
    loader; ``clear_cache()`` forces files to be read again.
    """

    def __init__(self, engine: ValidationEngine):
        """Initialize the loader.

        Args:
            engine: Engine used to validate every loaded definition.
        """
        self.engine = engine
        self._cache: dict[tuple[Path, DefinitionKind], dict[str, Any]] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    def load_definition(self, path: str | Path, kind: DefinitionKind | str) -> dict[str, Any]:
        """Load and validate one definition file.

        Args:
            path: Path to a .json, .yaml or .yml file.
            kind: Kind of definition the file holds.

        Returns:
            The parsed definition.

        Raises:
            DefinitionLoadError: If the file cannot be read or parsed, or the
                definition has error findings.
        """
        kind = DefinitionKind(kind)
        path = Path(path).resolve()
        cache_key = (path, kind)
        if cache_key in self._cache:
            return self._cache[cache_key]

        with LoggingContext(path=str(path), kind=kind.value):
            definition = parse_definition_file(path)
            report = self.validate_loaded(definition, kind)
            if not report.valid:
                logger.warning("Definition rejected", errors=report.error_count)
                raise DefinitionLoadError(
                    f"Definition validation failed: {self._summary(report)}",
                    path=str(path),
                    report=report,
                )

            for warning in report.warnings:
                logger.warning("Definition warning", code=warning.code, detail=warning.message)

            logger.info("Definition loaded", name=report.name)
        self._cache[cache_key] = definition
        return definition

    def load_directory(
        self, directory: str | Path, kind: DefinitionKind | str
    ) -> dict[str, dict[str, Any]]:
        """Load every definition file in a directory, keyed by definition name.

        Files are read in name order; subdirectories are not descended into.
        Collections are additionally validated as a set, so dangling
        relationship targets and dependency cycles fail the load.

        Args:
            directory: Directory to scan.
            kind: Kind of definition every file holds.

        Returns:
            Mapping of definition name (``collection`` or ``name``) to definition.

        Raises:
            DefinitionLoadError: If the directory is missing, any file fails to
                load, two files declare the same name, or the collection set
                does not validate.
        """
        kind = DefinitionKind(kind)
        directory = Path(directory)
        if not directory.is_dir():
            raise DefinitionLoadError("Definition directory not found", path=str(directory))

        definitions: dict[str, dict[str, Any]] = {}
        sources: dict[str, Path] = {}
        for path in list_definition_files(directory):
            definition = self.load_definition(path, kind)
            name = definition_name(definition)
            if name is None:
                raise DefinitionLoadError("Definition does not declare a name", path=str(path))
            if name in definitions:
                raise DefinitionLoadError(
                    f"Duplicate definition name '{name}' (already defined in {sources[name].name})",
                    path=str(path),
                )
            definitions[name] = definition
            sources[name] = path

        if kind == DefinitionKind.COLLECTION:
            self._validate_collection_set(definitions, sources)

        logger.info(
            "Definitions loaded",
            directory=str(directory),
            kind=kind.value,
            count=len(definitions),
        )
        return definitions

    def validate_loaded(self, definition: Any, kind: DefinitionKind) -> ValidationReport:
        result = self.engine.validate(kind, definition)
        return self.engine.build_report(definition, result.errors, kind)

    def _validate_collection_set(
        self, definitions: dict[str, dict[str, Any]], sources: dict[str, Path]
    ) -> None:
        results = self.engine.validate_collections(definitions)
        for name, result in results.items():
            if result.valid:
                continue
            report = self.engine.build_report(definitions[name], result.errors)
            raise DefinitionLoadError(
                f"Collection set validation failed: {self._summary(report)}",
                path=str(sources[name]),
                report=report,
            )

    @staticmethod
    def _summary(report: ValidationReport) -> str:
        return "; ".join(f"{e.path}: {e.message}" for e in report.errors)
