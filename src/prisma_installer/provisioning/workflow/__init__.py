"""Provisioning workflow concepts.

This package introduces first-class types for:
- Steps (precondition, action, refresh displacement)
- The lifecycle of fetched resource directories
- An orchestrator that runs steps in order and records their outcomes
"""

__all__: list[str] = []
