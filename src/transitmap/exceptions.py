"""Exceptions raised while loading a schedule."""

from typing import Iterable, List


class ScheduleLoadError(ValueError):
    """Raised when a feed has structural problems and cannot be indexed."""

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        summary = "; ".join(self.problems[:5])
        if len(self.problems) > 5:
            summary += f"; and {len(self.problems) - 5} more"
        super().__init__(f"Malformed schedule ({len(self.problems)} problems): {summary}")
