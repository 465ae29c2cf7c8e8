"""
Take and file numbering for production log sheets.
"""

from .duplicates import Candidate, DuplicateResult
from .editor import SaveOutcome, TakeEditor

__all__ = ["Candidate", "DuplicateResult", "SaveOutcome", "TakeEditor"]
