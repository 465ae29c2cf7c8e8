"""
Per-project log sheet persistence.

SQLite is the source of truth, one database per project.
"""

from .service import LogSheetService

__all__ = ["LogSheetService"]
