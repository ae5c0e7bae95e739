"""Result types for engine runs."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RunResult:
    """Outcome of one creation or destruction pass."""

    action: str
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    destroyed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def total_resources(self) -> int:
        """Number of resources the pass touched."""
        return len(self.created) + len(self.skipped) + len(self.destroyed) + len(self.failed)

    @property
    def success(self) -> bool:
        """Whether every resource reached its target status."""
        return len(self.failed) == 0

    def to_dict(self) -> dict[str, object]:
        return {
            "action": self.action,
            "created": list(self.created),
            "skipped": list(self.skipped),
            "destroyed": list(self.destroyed),
            "failed": dict(self.failed),
            "duration_seconds": round(self.duration_seconds, 3),
            "success": self.success,
        }


class ResultCollector:
    """Aggregates per-resource outcomes during a pass."""

    def __init__(self, action: str) -> None:
        self._result = RunResult(action=action)

    def record_created(self, identifier: str) -> None:
        self._result.created.append(identifier)

    def record_skipped(self, identifier: str) -> None:
        self._result.skipped.append(identifier)

    def record_destroyed(self, identifier: str) -> None:
        self._result.destroyed.append(identifier)

    def record_error(self, identifier: str, error: BaseException | str) -> None:
        """Record a failed resource and its cause."""
        self._result.failed[identifier] = str(error)

    def finalize(self, duration: float) -> RunResult:
        """Return the final result with duration set."""
        self._result.duration_seconds = duration
        return self._result
