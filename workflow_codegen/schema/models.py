"""
Pydantic models describing the workflow definition produced by the visual editor.

The editor stores a serializable state machine: a map of named states, each
carrying one or more recognized shapes (final, loop, invoke, always). The models
are deliberately lenient: partially specified definitions must still load so the
compiler can degrade unrecognized shapes instead of rejecting them. Keys the
compiler never reads (`context`, `payloadSchema`, loop body states, ...) ride
along as extra fields.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LenientModel(BaseModel):
    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
    )


def _optional_text(value: Any) -> Optional[str]:
    # numbers are accepted as names; anything else that is not text is dropped
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _mapping_or_empty(value: Any) -> Any:
    return value if isinstance(value, (Mapping, BaseModel)) else {}


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


# -----------------------------
# Guards & transitions
# -----------------------------
class Guard(LenientModel):
    """
    A single comparison evaluated against the runtime context.

    Examples:
      - {"type": "condition", "params": {"key": "status", "operator": "==", "value": "ok"}}
      - {"params": {"key": "player.id", "operator": "exists"}}
    """

    type: Optional[str] = "condition"
    params: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _mapping_only(cls, value: Any) -> Any:
        return _mapping_or_empty(value)

    @field_validator("type", mode="before")
    @classmethod
    def _type_text(cls, value: Any) -> Any:
        return _optional_text(value)

    @field_validator("params", mode="before")
    @classmethod
    def _params_mapping(cls, value: Any) -> Any:
        return _mapping_or_empty(value)

    @property
    def key(self) -> str:
        return str(self.params.get("key") or "")

    @property
    def operator(self) -> str:
        return str(self.params.get("operator") or "==")

    @property
    def value(self) -> Any:
        return self.params.get("value", "")


class Transition(LenientModel):
    # editor drafts may hold a guard before the target is picked
    target: Optional[str] = None
    guard: Optional[Guard] = None
    actions: List[Any] = Field(default_factory=list)

    @field_validator("target", mode="before")
    @classmethod
    def _target_text(cls, value: Any) -> Any:
        return _optional_text(value)

    @field_validator("actions", mode="before")
    @classmethod
    def _actions_as_list(cls, value: Any) -> Any:
        return _as_list(value)


def _coerce_transition(value: Any) -> Any:
    # onDone / onError may be a bare target name
    if value is None or isinstance(value, (Mapping, BaseModel)):
        return value
    return {"target": value}


def _coerce_transition_list(value: Any) -> Any:
    return [_coerce_transition(item) for item in _as_list(value) if item is not None]


# -----------------------------
# State shapes
# -----------------------------
class InvokeDefinition(LenientModel):
    """An invocation of a named capability (`core.delay`, `players.get`, ...)."""

    src: str = ""
    input: Dict[str, Any] = Field(default_factory=dict)
    on_done: Optional[Transition] = Field(default=None, alias="onDone")
    on_error: Optional[Transition] = Field(default=None, alias="onError")

    @field_validator("src", mode="before")
    @classmethod
    def _src_text(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @field_validator("on_done", "on_error", mode="before")
    @classmethod
    def _target_shorthand(cls, value: Any) -> Any:
        return _coerce_transition(value)

    @field_validator("input", mode="before")
    @classmethod
    def _input_defaults(cls, value: Any) -> Any:
        return _mapping_or_empty(value)


class LoopType(str, Enum):
    for_each = "forEach"
    while_ = "while"


class LoopDefinition(LenientModel):
    """
    Loop shape of a state. Caps are kept raw here and validated by the step
    builder, which falls back to defaults on values it cannot use.
    """

    type: Optional[str] = None
    collection: Any = None
    condition: Optional[Guard] = None
    max_iterations: Any = Field(default=None, alias="maxIterations")
    timeout_ms: Any = Field(default=None, alias="timeoutMs")
    parallel_batch_size: Any = Field(default=None, alias="parallelBatchSize")
    item_variable: Optional[str] = Field(default=None, alias="itemVariable")
    index_variable: Optional[str] = Field(default=None, alias="indexVariable")

    @field_validator("type", "item_variable", "index_variable", mode="before")
    @classmethod
    def _names_as_text(cls, value: Any) -> Any:
        return _optional_text(value)


class StateDefinition(LenientModel):
    type: Optional[str] = None
    entry: List[Any] = Field(default_factory=list)
    on: Dict[str, List[Transition]] = Field(default_factory=dict)
    states: Dict[str, "StateDefinition"] = Field(default_factory=dict)
    always: List[Transition] = Field(default_factory=list)
    invoke: Optional[InvokeDefinition] = None
    loop: Optional[LoopDefinition] = None

    @model_validator(mode="before")
    @classmethod
    def _mapping_only(cls, value: Any) -> Any:
        return _mapping_or_empty(value)

    @field_validator("type", mode="before")
    @classmethod
    def _type_text(cls, value: Any) -> Any:
        return _optional_text(value)

    @field_validator("entry", mode="before")
    @classmethod
    def _entry_as_list(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("always", mode="before")
    @classmethod
    def _always_as_list(cls, value: Any) -> Any:
        return _coerce_transition_list(value)

    @field_validator("on", mode="before")
    @classmethod
    def _on_as_lists(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return {}
        return {str(event): _coerce_transition_list(item) for event, item in value.items()}

    @field_validator("states", mode="before")
    @classmethod
    def _states_mapping(cls, value: Any) -> Any:
        return _mapping_or_empty(value)

    @field_validator("invoke", "loop", mode="before")
    @classmethod
    def _shape_mapping(cls, value: Any) -> Any:
        # a shape that is not an object is no shape at all
        return value if isinstance(value, (Mapping, BaseModel)) else None

    @property
    def is_final(self) -> bool:
        return self.type == "final"

    def transition_targets(self) -> List[str]:
        """Every target this state declares, in declaration order."""

        transitions: List[Optional[Transition]] = []
        if self.invoke is not None:
            transitions.extend((self.invoke.on_done, self.invoke.on_error))
        transitions.extend(self.always)
        for event_transitions in self.on.values():
            transitions.extend(event_transitions)
        return [t.target for t in transitions if t is not None and t.target is not None]


# -----------------------------
# Workflow
# -----------------------------
class WorkflowDefinition(LenientModel):
    id: str = "workflow"
    initial: str = Field(min_length=1)
    states: Dict[str, StateDefinition]

    @field_validator("initial", mode="before")
    @classmethod
    def _initial_as_text(cls, value: Any) -> Any:
        return _optional_text(value)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        # stored records use numeric ids
        if value is None:
            return "workflow"
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


# -----------------------------
# Compiler options
# -----------------------------
class StrategyMode(str, Enum):
