"""Unit tests for portfolio validation."""

import pytest

from quiniela_engine.config import EngineConfig
from quiniela_engine.engine import PortfolioValidator, Ticket, TicketKind, validate
from quiniela_engine.engine.models import OUTCOME_ORDER


def make_ticket(symbols, index=0, probability=None):
    return Ticket(f"Q{index + 1}", TicketKind.CORE, tuple(symbols), hit_probability=probability)


def rotation_portfolio(num_tickets=20, num_slots=14):
    """Ticket j picks OUTCOME_ORDER[(j + s) % 3] on slot s; slot 1 is always L."""
    tickets = []
    for j in range(num_tickets):
        outcomes = [OUTCOME_ORDER[(j + s) % 3] for s in range(num_slots)]
        outcomes[0] = OUTCOME_ORDER[0]
        tickets.append(make_ticket(outcomes, j))
    return tickets


def tickets_from_counts(local, draw, visitor, width=10):
    symbols = "L" * local + "E" * draw + "V" * visitor
    return [make_ticket(symbols[i:i + width], i // width) for i in range(0, len(symbols), width)]


def only_distribution_config(**overrides):
    """Concentration and draw checks switched off."""
    return EngineConfig(
        concentration_general=1.0,
        concentration_initial=1.0,
        draw_min=0,
        draw_max=14,
        **overrides
    )


LOOSE_RANGES = {"L": (0.0, 1.0), "E": (0.0, 1.0), "V": (0.0, 1.0)}


def only_draws_config():
    return EngineConfig(
        concentration_general=1.0,
        concentration_initial=1.0,
        historical_ranges=LOOSE_RANGES,
    )


class TestEmptyPortfolio:

    def test_empty_is_invalid(self):
        report = validate([])
        assert not report.is_valid
        assert report.errors == ("Portfolio contains no tickets",)
        assert report.metrics == {}


class TestConcentration:

    def test_single_concentrated_slot_warns(self):
        """
        Up to concentration_violation_limit (3) concentrated slots are only
        reported as warnings; beyond that they collapse into one error. Slot 1
        is the lone violation here, so the portfolio stays valid.
        """
        report = validate(rotation_portfolio())

        assert report.is_valid, report.errors
        assert len(report.warnings) == 1
        assert report.warnings[0].startswith("Match 1: 100% on 'L'")
        assert not any("Distribution" in w for w in report.warnings + report.errors)

    def test_identical_tickets_fail(self):
        ticket = "LLLLLEEEEEVVVV"
        report = validate([make_ticket(ticket, i) for i in range(20)])

        assert not report.is_valid
        concentration = [e for e in report.errors if e.startswith("Multiple concentration violations")]
        assert concentration, f"Expected an aggregated concentration error, got {report.errors}"
        assert "Match 1" in concentration[0]

    def test_initial_slots_use_stricter_limit(self):
        # 13 of 20 tickets agree on slots 1 and 4: 65% breaks only the 60% limit
        tickets = rotation_portfolio()
        patched = []
        for j, ticket in enumerate(tickets):
            outcomes = list(ticket.outcomes)
            outcomes[0] = OUTCOME_ORDER[0] if j < 13 else OUTCOME_ORDER[2]
            outcomes[3] = OUTCOME_ORDER[1] if j < 13 else OUTCOME_ORDER[2]
            patched.append(make_ticket(outcomes, j))

        report = PortfolioValidator(only_distribution_config(historical_ranges=LOOSE_RANGES)).validate(patched)
        assert report.warnings == ()

        strict = EngineConfig(
            concentration_general=0.70,
            concentration_initial=0.60,
            draw_min=0,
            draw_max=14,
            historical_ranges=LOOSE_RANGES,
        )
        report = PortfolioValidator(strict).validate(patched)
        assert report.warnings == ("Match 1: 65% on 'L' (limit: 60%)",)


class TestDistribution:

    def test_within_ranges(self):
        report = PortfolioValidator(only_distribution_config()).validate(tickets_from_counts(38, 29, 33))
        assert report.warnings == ()
        assert report.errors == ()
        assert report.metrics["global_distribution"] == pytest.approx({"L": 0.38, "E": 0.29, "V": 0.33})

    def test_boundary_is_inside(self):
        report = PortfolioValidator(only_distribution_config()).validate(tickets_from_counts(41, 25, 34))
        assert not any("Distribution" in m for m in report.warnings + report.errors)

    def test_slightly_low_warns(self):
        report = PortfolioValidator(only_distribution_config()).validate(tickets_from_counts(41, 23, 36))

        assert report.warnings == ("Distribution E: 23.0% slightly low (min: 25.0%)",)
        assert report.is_valid

    def test_far_below_fails(self):
        report = PortfolioValidator(only_distribution_config()).validate(tickets_from_counts(41, 20, 39))

        assert "Distribution E: 20.0% well below minimum 25.0%" in report.errors
        assert not report.is_valid

    def test_far_above_fails(self):
        report = PortfolioValidator(only_distribution_config()).validate(tickets_from_counts(50, 25, 25))
        assert any(e.startswith("Distribution L: 50.0% well above maximum") for e in report.errors)
        assert any(e.startswith("Distribution V: 25.0% well below minimum") for e in report.errors)


class TestDrawCounts:

    def setup_method(self):
        self.validator = PortfolioValidator(only_draws_config())
        self.base = "EEEEELLLLLLLLL"

    def test_few_offenders_warn(self):
        tickets = [make_ticket(self.base, i) for i in range(20)]
        tickets[3] = make_ticket("EEEEEEEELLLLLL", 3)

        report = self.validator.validate(tickets)

        assert report.warnings == ("Q-4: 8 draws (maximum 6)",)
        assert report.errors == ()
        assert report.metrics["draw_range"] == [5, 8]

    def test_many_offenders_fail(self):
        tickets = [make_ticket(self.base, i) for i in range(20)]
        tickets[0] = make_ticket("EELLLLLLLLLLLL", 0)
        tickets[5] = make_ticket("EEEEEEEELLLLLL", 5)
        tickets[9] = make_ticket("LLLLLLLLLLLLLL", 9)

        report = self.validator.validate(tickets)

        assert not report.is_valid
        assert len(report.errors) == 1
        error = report.errors[0]
        assert error.startswith("Too many tickets outside the draw range")
        assert "Q-1: 2 draws (minimum 4)" in error
        assert "Q-10: 0 draws (minimum 4)" in error


class TestValidity:

    def test_too_many_warnings(self):
        report = validate(rotation_portfolio(), EngineConfig(max_warnings=0))

        assert not report.is_valid
        assert report.errors == ("Too many validation warnings (1 > 0)",)
        assert len(report.warnings) == 1

    def test_report_serializes(self):
        data = validate(rotation_portfolio()).to_dict()
        assert set(data) == {"is_valid", "warnings", "errors", "metrics"}
        assert isinstance(data["warnings"], list)


class TestMetrics:

    def test_probability_metrics(self):
        tickets = [
            make_ticket("EEEEELLLLLLLLL", 0, probability=0.5),
            make_ticket("EEEEEVVVVVVVVV", 1, probability=None),
        ]
        metrics = validate(tickets, EngineConfig(ticket_price=15.0)).metrics

        assert metrics["hit_probability_mean"] == pytest.approx(0.25)
        assert metrics["hit_probability_min"] == 0.0
        assert metrics["hit_probability_max"] == 0.5
        assert metrics["portfolio_hit_probability"] == pytest.approx(0.5)
        assert metrics["total_cost"] == pytest.approx(30.0)
        assert metrics["efficiency"] == pytest.approx(0.5 / 0.03)
        assert metrics["draw_mean"] == 5.0

    def test_free_tickets_have_zero_efficiency(self):
        metrics = validate(rotation_portfolio(), EngineConfig(ticket_price=0.0)).metrics
        assert metrics["total_cost"] == 0.0
        assert metrics["efficiency"] == 0.0
