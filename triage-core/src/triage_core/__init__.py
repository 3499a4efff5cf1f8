"""
Triage Core - scoring, rule evaluation, conflict detection and digests for
multi-project coordination workspaces.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
