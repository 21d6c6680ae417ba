"""Error aggregation for grouping and populating metrics."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

# A source fetch returns raw groups: group label -> entity id -> metric name -> value.
SourceFetchFunc = Callable[[], dict[str, dict[str, dict[str, Any]]]]


class ErrorGroup(Exception):
    """A bundle of errors that may or may not allow execution to continue."""

    def __init__(self, errors: Iterable[BaseException] = (), recoverable: bool = False) -> None:
        super().__init__()
        self.errors: list[BaseException] = list(errors)
        self.recoverable = recoverable

    def append(self, *errors: BaseException) -> None:
        """Add errors to the group."""
        self.errors.extend(errors)

    def __str__(self) -> str:
        kind = "Recoverable" if self.recoverable else "Non-recoverable"
        return f"{kind} error group: {', '.join(str(err) for err in self.errors)}"


@dataclass
class PopulateResult:
    """Outcome of populating an integration: whether data got in, and what went wrong."""

    errors: list[BaseException] = field(default_factory=list)
    populated: bool = False

    def __str__(self) -> str:
        return "".join(["populate errors:", *(f", {err}" for err in self.errors)])