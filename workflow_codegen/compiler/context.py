"""
Container for shared compiler dependencies (options, optional engine).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Collection, Optional, Protocol, runtime_checkable

from workflow_codegen.schema.models import CompilerOptions


@runtime_checkable
class WorkflowEngine(Protocol):
    """
    The runtime that executes workflows, when one is installed.

    The compiler only asks it which capability sources it can serve so that
    typos in api-call sources surface as warnings at compile time.
    """

    def known_sources(self) -> Collection[str]: ...


@dataclass(frozen=True)
class CompilerContext:
    options: CompilerOptions = field(default_factory=CompilerOptions)
    engine: Optional[WorkflowEngine] = None
