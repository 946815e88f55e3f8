"""
Stage 1 — Parse a JSON payload into a typed WorkflowDefinition.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from pydantic import ValidationError

from workflow_codegen.errors import InvalidDefinitionError
from workflow_codegen.schema.models import WorkflowDefinition


def unwrap_definition(data: Any) -> Any:
    """Stored workflow records keep the state machine under `definition`."""

    if isinstance(data, Mapping) and isinstance(data.get("definition"), Mapping):
        return data["definition"]
    return data


def parse_workflow_definition(payload: Any) -> WorkflowDefinition:
    """
    Accepts a JSON string, a mapping or an already parsed WorkflowDefinition
    and returns a validated WorkflowDefinition whose `initial` names a state.
    """

    if isinstance(payload, WorkflowDefinition):
        definition = payload
    else:
        if isinstance(payload, (str, bytes)):
            try:
                data = json.loads(payload)
            except json.JSONDecodeError as exc:
                raise InvalidDefinitionError(f"Invalid workflow JSON payload: {exc}") from exc
        elif isinstance(payload, Mapping):
            data = payload
        else:
            raise InvalidDefinitionError(
                f"Unsupported payload type {type(payload).__name__}; expected str or Mapping"
            )

        data = unwrap_definition(data)
        if not isinstance(data, Mapping) or not data.get("states") or not data.get("initial"):
            raise InvalidDefinitionError("Invalid workflow definition: missing states or initial")

        try:
            definition = WorkflowDefinition.model_validate(data)
        except ValidationError as exc:
            raise InvalidDefinitionError(f"Workflow definition validation failed: {exc}") from exc

    if definition.initial not in definition.states:
        raise InvalidDefinitionError(
            f"Initial state '{definition.initial}' is not one of the declared states"
        )
    return definition
