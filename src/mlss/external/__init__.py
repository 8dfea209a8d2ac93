"""
Wrappers for external alignment tools.

Provides a Python interface to BLAST+ blastn and the Aligner
implementations used by search jobs.
"""

from mlss.external.base import (
    ExternalTool,
    ToolExecutionError,
    ToolNotFoundError,
    ToolResult,
    ToolTimeoutError,
)
from mlss.external.blast import Aligner, BlastAligner, BlastN, PrecomputedAligner

__all__ = [
    "Aligner",
    "BlastAligner",
    "BlastN",
    "ExternalTool",
    "PrecomputedAligner",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolResult",
    "ToolTimeoutError",
]
