from typing import Iterable, List, Optional


class NumberingError(Exception):
    pass


class InvalidFileNumber(NumberingError, ValueError):
    def __init__(self, raw: str):
        super().__init__(f"Not a file number or range: {raw!r}")
        self.raw = raw


class ValidationError(NumberingError):
    """
    Raised when mandatory fields are missing or hold values that cannot be
    read; ``missing`` and ``invalid`` hold the field ids.
    """

    def __init__(
        self,
        missing: Iterable[str] = (),
        labels: Optional[List[str]] = None,
        invalid: Iterable[str] = (),
        invalid_labels: Optional[List[str]] = None,
    ):
        self.missing = set(missing)
        self.invalid = set(invalid)
        self.labels = labels or sorted(self.missing)
        self.invalid_labels = invalid_labels or sorted(self.invalid)
        parts = []
        if self.missing:
            parts.append(f"Missing Required Fields: {', '.join(self.labels)}")
        if self.invalid:
            parts.append(f"Invalid Values: {', '.join(self.invalid_labels)}")
        super().__init__(". ".join(parts))


class BlockingDuplicateError(NumberingError):
    def __init__(self, result):
        super().__init__(result.message)
        self.result = result


class PersistenceError(NumberingError):
    pass


class ShiftAbortedError(PersistenceError):
    """A write inside the shift-and-save unit failed; the unit was rolled back."""
