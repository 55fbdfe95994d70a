"""
surreal-undo command line interface.

Commands:
- migrate: Apply a migration plan, journaling every outcome
- undo: Invert a journaled run, or one document of it
- restore: Restore a snapshot-strategy run from its backup collections
- journal list / journal show: Inspect run journals
"""

from .commands import cli, main

__all__ = ["cli", "main"]
