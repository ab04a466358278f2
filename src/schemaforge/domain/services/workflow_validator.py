"""Validation of function definitions and their step graphs.

Step ids from conditional branches share one flat id-space with top-level
steps, so a template may reference a nested step from anywhere.

Template references are found by scanning the JSON serialization of each
top-level step for ``{{steps.<id>.``. The scan also sees string values that
only look like templates, which can yield false positives.
"""

import json
from collections.abc import Collection, Iterator
from typing import Any

from schemaforge.domain.entities.definition_types import (
    DATABASE_STEP_TYPES,
    SEMVER_PATTERN,
    STEP_REFERENCE_PATTERN,
    StepType,
)
from schemaforge.domain.entities.validation import ErrorKind, Severity, ValidationError
from schemaforge.domain.services.semantic_validator import unknown_collection
from schemaforge.domain.services.structural_validator import depth_exceeded

DEFAULT_ENDPOINT_PREFIX = "/functions/"


def step_path(step_id: str) -> str:
    return f"steps.{step_id}"


def iter_steps(steps: list[dict[str, Any]], depth: int = 1) -> Iterator[tuple[dict[str, Any], int]]:
    """Yield every step with its nesting depth, descending into conditional branches."""
    for step in steps:
        yield step, depth
        if step.get("type") != StepType.CONDITIONAL.value:
            continue
        branches = []
        if isinstance(step.get("then"), dict):
            branches.append(step["then"])
        branches.extend(s for s in step.get("else") or [] if isinstance(s, dict))
        yield from iter_steps(branches, depth + 1)


def referenced_step_ids(step: dict[str, Any]) -> list[str]:
    """Return the distinct step ids a step references through templates, in order."""
    serialized = json.dumps(step, default=str)
    return list(dict.fromkeys(STEP_REFERENCE_PATTERN.findall(serialized)))


class WorkflowValidator:
    """Checks step ids, template references and per-type step payloads.

    Attributes:
        max_depth: Deepest conditional nesting walked.
        endpoint_prefix: Conventional path prefix for function endpoints.
    """

    def __init__(self, max_depth: int, endpoint_prefix: str = DEFAULT_ENDPOINT_PREFIX) -> None:
        self.max_depth = max_depth
        self.endpoint_prefix = endpoint_prefix

    def validate(
        self,
        definition: dict[str, Any],
        known_collections: Collection[str] | None = None,
    ) -> list[ValidationError]:
        """Validate a structurally valid function definition.

        Args:
            definition: Function definition mapping.
            known_collections: Collection names database steps may target;
                step collections are not checked when None.

        Returns:
            List of findings (empty if valid).
        """
        errors: list[ValidationError] = []

        endpoint = definition.get("endpoint")
        if endpoint and not endpoint.startswith(self.endpoint_prefix):
            errors.append(
                ValidationError(
                    kind=ErrorKind.SEMANTIC,
                    path="endpoint",
                    code="INVALID_ENDPOINT_FORMAT",
                    message=f"Function endpoint '{endpoint}' should start with '{self.endpoint_prefix}'",
                    severity=Severity.WARNING,
                )
            )

        version = definition.get("version")
        if version is not None and not SEMVER_PATTERN.match(version):
            errors.append(
                ValidationError(
                    kind=ErrorKind.FORMAT,
                    path="version",
                    code="INVALID_VERSION_FORMAT",
                    message=f"Version '{version}' must follow semantic versioning (x.y.z)",
                )
            )

        steps = definition.get("steps") or []
        all_steps = list(iter_steps(steps))

        too_deep = [step for step, depth in all_steps if depth > self.max_depth]
        if too_deep:
            errors.append(depth_exceeded(step_path(too_deep[0]["id"]), self.max_depth))
            return errors

        declared: set[str] = set()
        for step, _ in all_steps:
            step_id = step["id"]
            if step_id in declared:
                errors.append(
                    ValidationError(
                        kind=ErrorKind.REFERENCE,
                        path=step_path(step_id),
                        code="DUPLICATE_STEP_ID",
                        message=f"Step id '{step_id}' is declared more than once",
                    )
                )
            declared.add(step_id)

        for step in steps:
            for ref in referenced_step_ids(step):
                if ref not in declared:
                    errors.append(
                        ValidationError(
                            kind=ErrorKind.REFERENCE,
                            path=step_path(step["id"]),
                            code="INVALID_STEP_REFERENCE",
                            message=f"Step '{step['id']}' references non-existent step '{ref}'",
                        )
                    )

        for step, _ in all_steps:
            errors.extend(self.validate_step(step, known_collections))

        return errors

    def validate_step(
        self,
        step: dict[str, Any],
        known_collections: Collection[str] | None = None,
    ) -> list[ValidationError]:
        """Check the payload a step's type requires."""
        errors: list[ValidationError] = []
        step_id = step["id"]
        step_type = step["type"]
        path = step_path(step_id)

        def missing(code: str, message: str, severity: Severity = Severity.ERROR) -> None:
            errors.append(
                ValidationError(
                    kind=ErrorKind.SEMANTIC,
                    path=path,
                    code=code,
                    message=message,
                    severity=severity,
                )
            )

        if step_type == StepType.TRANSFORM.value and not step.get("script"):
            missing("MISSING_TRANSFORM_SCRIPT", f"Transform step '{step_id}' must specify a script")

        if step_type == StepType.AGGREGATE.value and not isinstance(step.get("pipeline"), list):
            missing(
                "MISSING_AGGREGATION_PIPELINE",
                f"Aggregate step '{step_id}' must have a pipeline array",
            )

        if step_type in DATABASE_STEP_TYPES:
            collection = step.get("collection")
            if not collection:
                missing(
                    "MISSING_STEP_COLLECTION",
                    f"Database step '{step_id}' should specify a collection",
                    Severity.WARNING,
                )
            elif known_collections is not None and collection not in known_collections:
                errors.append(unknown_collection(f"{path}.collection", collection))

        if step_type == StepType.HTTP.value and not step.get("url"):
            missing("MISSING_HTTP_URL", f"HTTP step '{step_id}' must specify a url")

        if step_type == StepType.CONDITIONAL.value and not step.get("then"):
            missing(
                "MISSING_CONDITIONAL_BRANCH",
                f"Conditional step '{step_id}' must specify a then branch",
            )

        return errors
