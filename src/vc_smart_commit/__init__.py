"""
Top-level package for vc_smart_commit.

The package splits the pending changes of a Git working tree into
logically coherent commits and creates them. The engine lives in
:mod:`vc_smart_commit.orchestrator`; the CLI entry point is
:mod:`vc_smart_commit.cli`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
