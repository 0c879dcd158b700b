"""
Canonical data models for normalized test reports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class CaseStatus(Enum):
    """Outcome of a single test case."""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CaseRecord:
    """Represents a single test case result."""
    name: str
    class_name: str
    error_details: Optional[str] = None
    error_type: Optional[str] = None
    duration: float = 0.0
    skipped: bool = False
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    diagnostics: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        if self.class_name and self.name:
            return f"{self.class_name}.{self.name}"
        return self.class_name or self.name

    @property
    def status(self) -> CaseStatus:
        if self.error_details is not None:
            return CaseStatus.FAILED
        if self.skipped:
            return CaseStatus.SKIPPED
        return CaseStatus.PASSED


@dataclass(frozen=True)
class SuiteRecord:
    """Represents one test suite execution and the cases it owns."""
    name: str
    timestamp: Optional[datetime] = None
    duration: float = 0.0
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    cases: tuple[CaseRecord, ...] = field(default_factory=tuple)
    file: Optional[str] = None
    diagnostics: tuple[str, ...] = ()

    def get_case(self, name: str) -> Optional[CaseRecord]:
        """Return the first case with the given name, or None."""
        for case in self.cases:
            if case.name == name:
                return case
        return None

    @property
    def failed_count(self) -> int:
        return sum(1 for c in self.cases if c.status == CaseStatus.FAILED)

    @property
    def skipped_count(self) -> int:
        return sum(1 for c in self.cases if c.status == CaseStatus.SKIPPED)

    @property
    def passed_count(self) -> int:
        return len(self.cases) - self.failed_count - self.skipped_count
