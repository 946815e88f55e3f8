"""
Shared exception hierarchy for the workflow code generator.
"""


class WorkflowCompilerError(Exception):
    """Base class for all compiler related errors."""


class InvalidDefinitionError(WorkflowCompilerError):
    """Raised when the workflow definition is missing `states` or `initial`."""


class InputAcquisitionError(WorkflowCompilerError):
    """Raised when a definition cannot be read, decoded or fetched."""
