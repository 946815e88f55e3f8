"""
Public entrypoint for compiling workflow definitions into standalone Python code.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from workflow_codegen.codegen.partials import PartialRegistry
from workflow_codegen.codegen.render import render
from workflow_codegen.compiler.build_steps import build_steps
from workflow_codegen.compiler.context import CompilerContext
from workflow_codegen.compiler.graph_sort import sort_states
from workflow_codegen.compiler.parse import parse_workflow_definition
from workflow_codegen.schema.models import CompilerOptions

logger = logging.getLogger(__name__)


def compile_workflow(
    payload: Any,
    options: Optional[CompilerOptions] = None,
    *,
    context: Optional[CompilerContext] = None,
    partials: Optional[PartialRegistry] = None,
    generated_at: Optional[str] = None,
) -> str:
    """
    Compile a workflow definition into the source of one Python module.

    Raises InvalidDefinitionError when `states` or `initial` is missing; every
    later stage degrades unrecognized shapes instead of failing.
    """

    if context is None:
        context = CompilerContext(options=options or CompilerOptions())
    elif options is not None:
        context = CompilerContext(options=options, engine=context.engine)

    definition = parse_workflow_definition(payload)
    order = sort_states(definition)
    steps = build_steps(definition, order, context)
    logger.info(
        "Compiling workflow %s: %d states, %d rendered steps",
        definition.id,
        len(order),
        len(steps),
    )
    return render(
        steps,
        definition.id,
        len(order),
        options=context.options,
        partials=partials,
        generated_at=generated_at,
    )


__all__ = ["compile_workflow", "CompilerContext", "CompilerOptions"]
