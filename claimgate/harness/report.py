"""
Result types for conformance runs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..authz.types import Decision


class ScenarioStatus(Enum):
    """Status of a finished scenario."""
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


@dataclass
class ScenarioResult:
    """Result of one conformance scenario."""
    scenario_name: str
    status: ScenarioStatus
    duration: float
    message: Optional[str] = None
    decision: Optional[Decision] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.status is ScenarioStatus.PASSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scenario': self.scenario_name,
            'status': self.status.value,
            'duration': self.duration,
            'message': self.message,
            'decision': self.decision.to_dict() if self.decision else None,
            'context': dict(self.context)
        }


@dataclass
class HarnessReport:
    """
    Aggregated outcome of a conformance run.

    exit_code is 0 when every scenario passed and 1 otherwise; setup
    faults never produce a report.
    """
    results: List[ScenarioResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    duration: float = 0.0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.status is ScenarioStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status is ScenarioStatus.FAILED)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.status is ScenarioStatus.ERROR)

    @property
    def all_passed(self) -> bool:
        return self.passed == self.total

    @property
    def exit_code(self) -> int:
        return 0 if self.all_passed else 1

    def result_for(self, scenario_name: str) -> Optional[ScenarioResult]:
        for result in self.results:
            if result.scenario_name == scenario_name:
                return result
        return None

    def summary(self) -> str:
        return (
            f"{self.passed}/{self.total} scenarios passed "
            f"({self.failed} failed, {self.errors} errors) in {self.duration:.2f}s"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'started_at': self.started_at.isoformat(),
            'duration': self.duration,
            'total': self.total,
            'passed': self.passed,
            'failed': self.failed,
            'errors': self.errors,
            'results': [r.to_dict() for r in self.results]
        }
