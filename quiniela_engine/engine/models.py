# quiniela_engine/engine/models.py
"""
Domain models shared by every pipeline stage.

Outcomes, categories and ticket kinds are enums; matches and tickets are
frozen dataclasses so a classified card can be shared read-only between
generators and estimator workers.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Any, Optional, Tuple, Sequence


class Outcome(str, Enum):
    """Pool outcome; the value is the symbol printed on a Progol card."""
    HOME = "L"
    DRAW = "E"
    AWAY = "V"

    @classmethod
    def from_symbol(cls, symbol: str) -> "Outcome":
        return cls(str(symbol).strip().upper())


# Enumeration order doubles as the tie-break order
OUTCOME_ORDER: Tuple[Outcome, ...] = (Outcome.HOME, Outcome.DRAW, Outcome.AWAY)


class MatchCategory(str, Enum):
    ANCHOR = "anchor"
    DIVISOR = "divisor"
    DRAW_LEANING = "draw_leaning"
    NEUTRAL = "neutral"


class TicketKind(str, Enum):
    CORE = "Core"
    SATELLITE = "Satelite"


class GenerationStatus(str, Enum):
    OK = "ok"
    DEGRADED_FALLBACK = "degraded_fallback"


@dataclass(frozen=True)
class Probabilities:
    """Home/draw/away probability triple."""
    p_local: float
    p_draw: float
    p_visitor: float

    def for_outcome(self, outcome: Outcome) -> float:
        if outcome is Outcome.HOME:
            return self.p_local
        if outcome is Outcome.DRAW:
            return self.p_draw
        return self.p_visitor

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.p_local, self.p_draw, self.p_visitor)

    @property
    def total(self) -> float:
        return self.p_local + self.p_draw + self.p_visitor

    def ranked(self) -> List[Tuple[Outcome, float]]:
        """Outcomes by descending probability; ties keep Home, Draw, Away order."""
        pairs = list(zip(OUTCOME_ORDER, self.as_tuple()))
        return sorted(pairs, key=lambda pair: -pair[1])

    def to_dict(self) -> Dict[str, float]:
        return {
            "p_local": self.p_local,
            "p_draw": self.p_draw,
            "p_visitor": self.p_visitor,
        }


@dataclass(frozen=True)
class Match:
    """One fixture slot with raw probabilities and contextual signals."""
    local: str
    visitor: str
    p_local: float
    p_draw: float
    p_visitor: float
    form_diff: int = 0
    injury_impact: int = 0
    is_decider: bool = False

    @property
    def probabilities(self) -> Probabilities:
        return Probabilities(self.p_local, self.p_draw, self.p_visitor)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local": self.local,
            "visitor": self.visitor,
            "p_local": self.p_local,
            "p_draw": self.p_draw,
            "p_visitor": self.p_visitor,
            "form_diff": self.form_diff,
            "injury_impact": self.injury_impact,
            "is_decider": self.is_decider,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Match":
        return cls(
            local=str(data.get("local", "")),
            visitor=str(data.get("visitor", "")),
            p_local=float(data["p_local"]),
            p_draw=float(data["p_draw"]),
            p_visitor=float(data["p_visitor"]),
            form_diff=int(data.get("form_diff", 0) or 0),
            injury_impact=int(data.get("injury_impact", 0) or 0),
            is_decider=bool(data.get("is_decider", False)),
        )


@dataclass(frozen=True)
class ClassifiedMatch:
    """A match after calibration and classification."""
    index: int
    match: Match
    calibrated: Probabilities
    category: MatchCategory
    suggested_outcome: Outcome
    alternative_outcome: Outcome
    confidence: float

    @property
    def p_draw(self) -> float:
        return self.calibrated.p_draw

    @property
    def is_anchor(self) -> bool:
        return self.category is MatchCategory.ANCHOR

    def probability_of(self, outcome: Outcome) -> float:
        return self.calibrated.for_outcome(outcome)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "local": self.match.local,
            "visitor": self.match.visitor,
            **self.calibrated.to_dict(),
            "category": self.category.value,
            "suggested_outcome": self.suggested_outcome.value,
            "alternative_outcome": self.alternative_outcome.value,
            "confidence": round(self.confidence, 6),
        }


def utc_timestamp() -> str:
    """ISO-8601 UTC time with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def count_draws(outcomes: Sequence[Outcome]) -> int:
    return sum(1 for outcome in outcomes if outcome is Outcome.DRAW)


def outcome_shares(outcomes: Sequence[Outcome]) -> Dict[str, float]:
    total = len(outcomes)
    if total == 0:
        return {o.value: 0.0 for o in OUTCOME_ORDER}
    return {o.value: sum(1 for r in outcomes if r is o) / total for o in OUTCOME_ORDER}


@dataclass(frozen=True)
class Ticket:
    """One quiniela: an ordered outcome per match slot."""
    ticket_id: str
    kind: TicketKind
    outcomes: Tuple[Outcome, ...]
    pair_id: Optional[int] = None
    hit_probability: Optional[float] = None

    def __post_init__(self):
        # Accept any sequence of outcomes or symbols
        object.__setattr__(
            self, "outcomes",
            tuple(o if isinstance(o, Outcome) else Outcome.from_symbol(o) for o in self.outcomes)
        )

    @property
    def draw_count(self) -> int:
        return count_draws(self.outcomes)

    @property
    def distribution(self) -> Dict[str, float]:
        return outcome_shares(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)

    def with_hit_probability(self, probability: float) -> "Ticket":
        return replace(self, hit_probability=probability)

    def symbols(self) -> List[str]:
        return [o.value for o in self.outcomes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "kind": self.kind.value,
            "outcomes": self.symbols(),
            "draws": self.draw_count,
            "hit_probability": self.hit_probability,
            "distribution": self.distribution,
            "pair_id": self.pair_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ticket":
        probability = data.get("hit_probability")
        return cls(
            ticket_id=str(data["ticket_id"]),
            kind=TicketKind(data.get("kind", TicketKind.CORE.value)),
            outcomes=tuple(Outcome.from_symbol(s) for s in data["outcomes"]),
            pair_id=data.get("pair_id"),
            hit_probability=None if probability is None else float(probability),
        )


@dataclass(frozen=True)
class ValidationReport:
    """Immutable result of one validation pass."""
    is_valid: bool
    warnings: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()
    metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "metrics": dict(self.metrics),
        }


@dataclass(frozen=True)
class SatelliteBatch:
    tickets: List[Ticket]
    status: GenerationStatus = GenerationStatus.OK
    pivot_indices: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.tickets)


@dataclass
class PortfolioResult:
    """Everything one pipeline run produced."""
    classified_matches: List[ClassifiedMatch]
    core_tickets: List[Ticket]
    satellite_tickets: List[Ticket]
    tickets: List[Ticket]
    report: ValidationReport
    status: GenerationStatus = GenerationStatus.OK
    generation_warnings: List[str] = field(default_factory=list)
    seed: Optional[int] = None
    joint_hit_probability: Optional[float] = None
    generated_at: str = field(default_factory=utc_timestamp)

    @property
    def matches(self) -> List[Match]:
        return [cm.match for cm in self.classified_matches]

    def to_dict(self) -> Dict[str, Any]:
        joint = self.joint_hit_probability
        return {
            "tickets": [t.to_dict() for t in self.tickets],
            "classified_matches": [cm.to_dict() for cm in self.classified_matches],
            "validation": self.report.to_dict(),
            "metadata": {
                "status": self.status.value,
                "generation_warnings": list(self.generation_warnings),
                "seed": self.seed,
                "total_tickets": len(self.tickets),
                "core_tickets": len(self.core_tickets),
                "satellite_tickets": len(self.satellite_tickets),
                "joint_hit_probability": None if joint is None or math.isnan(joint) else joint,
                "generated_at": self.generated_at,
            },
        }
