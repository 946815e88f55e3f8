"""
Stage 2 — Order workflow states along their declared transitions.

Kahn's algorithm over the transition graph. Edges to unknown states are
dropped, the initial state wins ties among zero in-degree states, and states
left over by cycles are appended in source order so every state appears once.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Dict, List

from workflow_codegen.schema.models import WorkflowDefinition

logger = logging.getLogger(__name__)


def build_transition_graph(definition: WorkflowDefinition) -> Dict[str, List[str]]:
    """Adjacency list keyed by state name, restricted to known targets."""

    states = definition.states
    graph: Dict[str, List[str]] = {name: [] for name in states}
    for name, state in states.items():
        for target in state.transition_targets():
            if target in states:
                graph[name].append(target)
            else:
                logger.debug("Dropping transition %s -> %s: unknown target", name, target)
    return graph


def sort_states(definition: WorkflowDefinition) -> List[str]:
    graph = build_transition_graph(definition)
    in_degree: Dict[str, int] = {name: 0 for name in graph}
    for children in graph.values():
        for child in children:
            in_degree[child] += 1

    queue = deque(name for name, degree in in_degree.items() if degree == 0)
    if definition.initial in queue:
        queue.remove(definition.initial)
        queue.appendleft(definition.initial)

    ordered: List[str] = []
    while queue:
        current = queue.popleft()
        ordered.append(current)
        for child in graph[current]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    if len(ordered) < len(graph):
        emitted = set(ordered)
        remainder = [name for name in graph if name not in emitted]
        logger.debug("Appending %d cyclic/unreachable states: %s", len(remainder), remainder)
        ordered.extend(remainder)

    return ordered
