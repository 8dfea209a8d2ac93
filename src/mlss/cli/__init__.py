"""
CLI commands for MLSS.

Provides the command-line interface for running searches, validating
inputs, summarizing results and writing configuration files.
"""

__all__ = ["config", "main", "results", "search"]
