from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

from verdict.data_models import DisasterData, MarketData, Recall, SellerSignals, VehicleHistory

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Absent:
    """Collaborator answered but had nothing to report."""

    reason: str = "no data"


@dataclass(frozen=True)
class Failed:
    """Collaborator raised or timed out."""

    reason: str


@dataclass(frozen=True)
class Skipped:
    """Collaborator was never asked, usually because an input was missing."""

    reason: str


Outcome = Union[Ok[T], Absent, Failed, Skipped]


def value_of(outcome: Outcome[T]) -> T | None:
    if isinstance(outcome, Ok):
        return outcome.value
    return None


def was_attempted(outcome: Outcome[T]) -> bool:
    return not isinstance(outcome, Skipped)


@dataclass(frozen=True)
class SignalBundle:
    history: Outcome[VehicleHistory] = field(default_factory=lambda: Skipped("not requested"))
    market: Outcome[MarketData] = field(default_factory=lambda: Skipped("not requested"))
    disaster: Outcome[DisasterData] = field(default_factory=lambda: Skipped("not requested"))
    recalls: Outcome[tuple[Recall, ...]] = field(default_factory=lambda: Skipped("not requested"))
    seller: Outcome[SellerSignals] = field(default_factory=lambda: Skipped("not requested"))

    def failures(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for name in ("history", "market", "disaster", "recalls", "seller"):
            outcome = getattr(self, name)
            if isinstance(outcome, Failed):
                out[name] = outcome.reason
        return out
