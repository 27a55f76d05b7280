# quiniela_engine/schemas.py

from pydantic import BaseModel, Field, ConfigDict, AliasChoices, field_validator
from typing import List, Dict, Any, Optional

from .engine.models import Match, Outcome, Ticket, TicketKind


class MatchIn(BaseModel):
    """One fixture with raw probabilities; accepts the Spanish CSV field names too"""
    local: str = ""
    visitor: str = Field(default="", validation_alias=AliasChoices("visitor", "visitante"))
    p_local: float = Field(..., ge=0.0, validation_alias=AliasChoices("p_local", "prob_local"))
    p_draw: float = Field(..., ge=0.0, validation_alias=AliasChoices("p_draw", "prob_empate"))
    p_visitor: float = Field(..., ge=0.0, validation_alias=AliasChoices("p_visitor", "prob_visitante"))
    form_diff: int = Field(default=0, validation_alias=AliasChoices("form_diff", "forma_diferencia"))
    injury_impact: int = Field(default=0, validation_alias=AliasChoices("injury_impact", "lesiones_impact"))
    is_decider: bool = Field(default=False, validation_alias=AliasChoices("is_decider", "es_final"))

    model_config = ConfigDict(
        populate_by_name=True,
        protected_namespaces=()
    )

    def to_match(self) -> Match:
        return Match(
            local=self.local,
            visitor=self.visitor,
            p_local=self.p_local,
            p_draw=self.p_draw,
            p_visitor=self.p_visitor,
            form_diff=self.form_diff,
            injury_impact=self.injury_impact,
            is_decider=self.is_decider,
        )


class TicketIn(BaseModel):
    ticket_id: str
    kind: str = TicketKind.CORE.value
    outcomes: List[str]
    pair_id: Optional[int] = None
    hit_probability: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @field_validator("outcomes")
    @classmethod
    def check_symbols(cls, v):
        symbols = [str(s).strip().upper() for s in v]
        allowed = {o.value for o in Outcome}
        bad = [s for s in symbols if s not in allowed]
        if bad:
            raise ValueError(f"Unknown outcome symbols: {bad} (expected L, E or V)")
        return symbols

    @field_validator("kind")
    @classmethod
    def check_kind(cls, v):
        allowed = [k.value for k in TicketKind]
        if v not in allowed:
            raise ValueError(f"kind must be one of {allowed}")
        return v

    def to_ticket(self) -> Ticket:
        return Ticket(
            ticket_id=self.ticket_id,
            kind=TicketKind(self.kind),
            outcomes=tuple(self.outcomes),
            pair_id=self.pair_id,
            hit_probability=self.hit_probability,
        )


class TicketOut(BaseModel):
    ticket_id: str
    kind: str
    outcomes: List[str]
    draws: int
    hit_probability: Optional[float] = None
    distribution: Dict[str, float] = Field(default_factory=dict)
    pair_id: Optional[int] = None


class ClassifiedMatchOut(BaseModel):
    index: int
    local: str
    visitor: str
    p_local: float
    p_draw: float
    p_visitor: float
    category: str
    suggested_outcome: str
    alternative_outcome: str
    confidence: float


class ValidationReportOut(BaseModel):
    is_valid: bool
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    metrics: Dict[str, Any] = Field(default_factory=dict)


class ClassifyRequest(BaseModel):
    """Request model for the classification endpoint"""
    matches: List[MatchIn] = Field(..., description="Raw fixture card")
    config: Optional[Dict[str, Any]] = Field(default=None, description="EngineConfig overrides")

    model_config = ConfigDict(
        protected_namespaces=()
    )


class ClassifyResponse(BaseModel):
    status: str = "success"
    matches: List[ClassifiedMatchOut]
    category_counts: Dict[str, int] = Field(default_factory=dict)
    request_id: Optional[str] = None


class PortfolioRequest(BaseModel):
    """Request model for portfolio generation and export"""
    matches: List[MatchIn] = Field(..., description="Raw fixture card")
    config: Optional[Dict[str, Any]] = Field(default=None, description="EngineConfig overrides")
    seed: Optional[int] = Field(default=None, ge=0, description="Seed for reproducible runs")

    model_config = ConfigDict(
        protected_namespaces=()
    )


class PortfolioResponse(BaseModel):
    status: str = "success"
    generation_status: str
    generation_warnings: List[str] = Field(default_factory=list)
    tickets: List[TicketOut]
    classified_matches: List[ClassifiedMatchOut] = Field(default_factory=list)
    validation: ValidationReportOut
    metadata: Dict[str, Any] = Field(default_factory=dict)
    request_id: Optional[str] = None
    processing_time: Optional[float] = None


class ValidateRequest(BaseModel):
    """Tickets to validate; matches are only needed to re-estimate missing probabilities"""
    tickets: List[TicketIn]
    matches: Optional[List[MatchIn]] = None
    config: Optional[Dict[str, Any]] = None
    seed: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(
        protected_namespaces=()
    )


class ValidateResponse(BaseModel):
    status: str = "success"
    validation: ValidationReportOut
    tickets: List[TicketOut] = Field(default_factory=list)
    request_id: Optional[str] = None
