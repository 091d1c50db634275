"""Tri-state extraction outcomes.

Every extraction step returns one of three variants:

* ``Success(data)`` - clean result.
* ``SuccessWithWarnings(data, issues)`` - usable result plus diagnostics.
* ``Error(issues)`` - nothing usable; every issue has ``ERROR`` severity.

``ExtractionOutcome`` is the closed union of the three; callers are expected to
``match`` on it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

from disclosures.models import IssueSeverity, ParseIssue

T = TypeVar("T")
R = TypeVar("R")


class _OutcomeOps(Generic[T]):
    @property
    def is_success(self) -> bool:
        return not isinstance(self, Error)

    @property
    def is_error(self) -> bool:
        return isinstance(self, Error)

    @property
    def has_warnings(self) -> bool:
        return isinstance(self, SuccessWithWarnings)

    def data_or_none(self) -> T | None:
        match self:
            case Success(data=data) | SuccessWithWarnings(data=data):
                return data
            case _:
                return None

    def all_issues(self) -> list[ParseIssue]:
        match self:
            case SuccessWithWarnings(issues=issues) | Error(issues=issues):
                return list(issues)
            case _:
                return []

    def warnings(self) -> list[ParseIssue]:
        return [i for i in self.all_issues() if i.severity is IssueSeverity.WARNING]

    def errors(self) -> list[ParseIssue]:
        return [i for i in self.all_issues() if i.severity is IssueSeverity.ERROR]

    def map(self, fn: Callable[[T], R]) -> ExtractionOutcome[R]:
        match self:
            case Success(data=data):
                return Success(fn(data))
            case SuccessWithWarnings(data=data, issues=issues):
                return SuccessWithWarnings(fn(data), issues)
            case _:
                return self  # type: ignore[return-value]

    def on_success(self, action: Callable[[T], None]) -> ExtractionOutcome[T]:
        data = self.data_or_none()
        if self.is_success:
            action(data)  # type: ignore[arg-type]
        return self  # type: ignore[return-value]

    def on_error(self, action: Callable[[list[ParseIssue]], None]) -> ExtractionOutcome[T]:
        if self.is_error:
            action(self.all_issues())
        return self  # type: ignore[return-value]

    def on_warnings(self, action: Callable[[list[ParseIssue]], None]) -> ExtractionOutcome[T]:
        if self.has_warnings:
            action(self.all_issues())
        return self  # type: ignore[return-value]


@dataclass(frozen=True)
class Success(_OutcomeOps[T]):
    data: T


@dataclass(frozen=True)
class SuccessWithWarnings(_OutcomeOps[T]):
    data: T
    issues: list[ParseIssue] = field(default_factory=list)


@dataclass(frozen=True)
class Error(_OutcomeOps[T]):
    issues: list[ParseIssue] = field(default_factory=list)

    def __post_init__(self) -> None:
        if any(i.severity is not IssueSeverity.ERROR for i in self.issues):
            raise ValueError("Error outcomes may only carry ERROR issues")


ExtractionOutcome = Union[Success[T], SuccessWithWarnings[T], Error[T]]


def outcome_from(data: T, issues: Iterable[ParseIssue]) -> ExtractionOutcome[T]:
    """Classify ``data`` by the severity of the issues collected while producing it.

    Any ERROR wins and drops the data (only the ERROR issues are kept); otherwise
    any remaining issue downgrades the result to ``SuccessWithWarnings``.
    """
    issues = list(issues)
    errors = [i for i in issues if i.severity is IssueSeverity.ERROR]
    if errors:
        return Error(errors)
    if issues:
        return SuccessWithWarnings(data, issues)
    return Success(data)


def combine(
    outcomes: Iterable[ExtractionOutcome],
    merge: Callable[[list], T],
) -> ExtractionOutcome[T]:
    """Merge sub-step outcomes into one, preserving severity."""
    outcomes = list(outcomes)
    issues = [issue for outcome in outcomes for issue in outcome.all_issues()]
    if any(outcome.is_error for outcome in outcomes):
        return Error([i for i in issues if i.severity is IssueSeverity.ERROR])
    return outcome_from(merge([outcome.data_or_none() for outcome in outcomes]), issues)
