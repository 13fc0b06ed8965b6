"""
workspace-orchestrator

Purpose
- Build, test and third-party notices orchestration for a JavaScript/TypeScript
  monorepo, driven from one ``wsorch`` command.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
