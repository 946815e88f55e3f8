from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple

import pytest


class StubStrategy:
    """Records api calls made by generated code and replies with a canned result."""

    def __init__(self, reply: Dict[str, Any] | None = None) -> None:
        self.reply = reply if reply is not None else {}
        self.calls: List[Tuple[Dict[str, Any], Dict[str, Any]]] = []

    def execute_api_call(self, descriptor: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((descriptor, payload))
        return dict(self.reply)


def load_generated(code: str, function: str) -> Callable[..., Dict[str, Any]]:
    """Execute generated module source and return its workflow function."""

    namespace: Dict[str, Any] = {"__name__": "generated_workflow"}
    exec(compile(code, "<generated>", "exec"), namespace)
    return namespace[function]


@pytest.fixture
def delay_definition() -> Dict[str, Any]:
    return {
        "id": "demo",
        "initial": "start",
        "states": {
            "start": {"invoke": {"src": "core.delay", "input": {"ms": 500}, "onDone": "end"}},
            "end": {"type": "final"},
        },
    }


@pytest.fixture
def branch_definition() -> Dict[str, Any]:
    return {
        "id": "branching",
        "initial": "start",
        "states": {
            "start": {"always": "check"},
            "check": {
                "always": [
                    {
                        "target": "A",
                        "guard": {"type": "condition", "params": {"key": "status", "operator": "==", "value": "ok"}},
                    },
                    {"target": "B"},
                ]
            },
            "A": {"type": "final"},
            "B": {"type": "final"},
        },
    }


@pytest.fixture
def pipeline_definition() -> Dict[str, Any]:
    return {
        "id": "player-pipeline",
        "initial": "start",
        "states": {
            "start": {
                "invoke": {
                    "src": "core.setVariable",
                    "input": {"name": "greeting", "value": "$.name"},
                    "onDone": "fetch",
                }
            },
            "fetch": {
                "invoke": {
                    "src": "players.get",
                    "input": {"id": "$.player.id"},
                    "onDone": "walk",
                    "onError": "failed",
                }
            },
            "walk": {
                "loop": {"type": "forEach", "collection": "$.items", "maxIterations": 2},
                "always": "done",
            },
            "done": {"type": "final"},
            "failed": {"type": "final"},
        },
    }


@pytest.fixture
def stub_strategy() -> StubStrategy:
    return StubStrategy({"score": 10})


@pytest.fixture
def make_strategy() -> Callable[..., StubStrategy]:
    return StubStrategy


@pytest.fixture
def load_workflow() -> Callable[[str, str], Callable[..., Dict[str, Any]]]:
    return load_generated
