"""End-to-end tests for the Core + Satellite pipeline."""

from datetime import datetime, timedelta

import pytest

from quiniela_engine.config import EngineConfig
from quiniela_engine.engine import (
    GenerationStatus,
    PortfolioBuilder,
    TicketKind,
    build_portfolio,
    get_engine_status,
)
from quiniela_engine.exceptions import ConfigurationError, InsufficientMatchesError


class TestBuildPortfolio:

    def setup_method(self):
        self.config = EngineConfig(monte_carlo_trials=500, max_workers=1, seed=42)

    def test_default_shape(self, raw_matches):
        result = build_portfolio(raw_matches, self.config)

        assert len(result.tickets) == 20
        assert len(result.core_tickets) == 4
        assert len(result.satellite_tickets) == 16
        assert [t.kind for t in result.tickets[:4]] == [TicketKind.CORE] * 4
        assert all(t.kind is TicketKind.SATELLITE for t in result.tickets[4:])
        assert len({t.ticket_id for t in result.tickets}) == 20
        assert result.status is GenerationStatus.OK
        assert result.generation_warnings == []

    def test_every_ticket_is_complete(self, raw_matches):
        result = build_portfolio(raw_matches, self.config)

        for ticket in result.tickets:
            assert len(ticket) == 14
            assert 0.0 <= ticket.hit_probability <= 1.0
            assert self.config.draw_min <= ticket.draw_count <= self.config.draw_max, (
                f"{ticket.ticket_id} has {ticket.draw_count} draws"
            )

    def test_same_seed_same_portfolio(self, raw_matches):
        first = build_portfolio(raw_matches, self.config, seed=2024)
        second = build_portfolio(raw_matches, self.config, seed=2024)

        assert first.tickets == second.tickets
        assert first.report == second.report
        assert first.joint_hit_probability == second.joint_hit_probability

    def test_seed_defaults_to_config(self, raw_matches):
        result = build_portfolio(raw_matches, self.config)
        assert result.seed == 42
        assert result.tickets == build_portfolio(raw_matches, self.config, seed=42).tickets

    def test_fewer_tickets_than_core(self, raw_matches):
        config = EngineConfig(num_tickets=3, monte_carlo_trials=200, max_workers=1)
        result = build_portfolio(raw_matches, config)

        assert [t.ticket_id for t in result.tickets] == ["Core-1", "Core-2", "Core-3"]
        assert result.satellite_tickets == []

    def test_odd_satellite_count(self, raw_matches):
        config = EngineConfig(num_tickets=5, monte_carlo_trials=200, max_workers=1)
        result = build_portfolio(raw_matches, config)

        assert len(result.tickets) == 5
        assert result.tickets[-1].ticket_id == "Sat-1"
        assert result.tickets[-1].pair_id is None

    def test_no_divisor_card_degrades(self, no_divisor_matches):
        result = build_portfolio(no_divisor_matches, self.config)

        assert result.status is GenerationStatus.DEGRADED_FALLBACK
        assert result.generation_warnings
        assert "match 1" in result.generation_warnings[0]
        assert len(result.tickets) == 20

    def test_joint_probability_bounds(self, raw_matches):
        result = build_portfolio(raw_matches, self.config)
        best = max(t.hit_probability for t in result.tickets)

        assert 0.0 <= result.joint_hit_probability <= 1.0
        # One shared draw of results cannot beat independent tickets
        assert result.joint_hit_probability <= result.report.metrics["portfolio_hit_probability"] + 0.05
        assert result.joint_hit_probability >= best - 0.1

    def test_insufficient_matches(self, raw_matches):
        with pytest.raises(InsufficientMatchesError):
            build_portfolio(raw_matches[:10], self.config)

    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigurationError) as exc:
            PortfolioBuilder(EngineConfig(draw_min=7, draw_max=6))
        assert exc.value.details["config_key"] == "draw_min"

    def test_result_serializes(self, raw_matches):
        data = build_portfolio(raw_matches, self.config).to_dict()

        assert set(data) == {"tickets", "classified_matches", "validation", "metadata"}
        assert data["metadata"]["total_tickets"] == 20
        assert data["metadata"]["status"] == "ok"

    def test_generated_at_is_utc(self, raw_matches):
        stamp = build_portfolio(raw_matches, self.config).generated_at

        assert stamp.endswith("Z")
        parsed = datetime.fromisoformat(stamp[:-1] + "+00:00")
        assert parsed.utcoffset() == timedelta(0)


class TestConfigOverrides:

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError) as exc:
            EngineConfig().with_overrides({"num_tickts": 10})
        assert exc.value.details["config_key"] == "num_tickts"

    def test_out_of_range_value(self):
        with pytest.raises(ConfigurationError):
            EngineConfig().with_overrides({"concentration_general": 1.5})

    def test_override_applies(self):
        config = EngineConfig().with_overrides({"num_tickets": 8, "draw_max": 5})
        assert config.num_tickets == 8
        assert config.draw_max == 5

    def test_historical_ranges_override(self):
        config = EngineConfig().with_overrides({"historical_ranges": {"L": [0.3, 0.5], "E": [0.2, 0.4], "V": [0.2, 0.4]}})
        assert config.historical_ranges["L"] == (0.3, 0.5)

    def test_non_numeric_value(self):
        with pytest.raises(ConfigurationError) as exc:
            EngineConfig().with_overrides({"num_tickets": "five"})
        assert exc.value.details["config_key"] == "num_tickets"

    def test_fractional_count(self):
        with pytest.raises(ConfigurationError) as exc:
            EngineConfig().with_overrides({"monte_carlo_trials": 10.5})
        assert exc.value.details["config_key"] == "monte_carlo_trials"

    def test_malformed_range(self):
        with pytest.raises(ConfigurationError) as exc:
            EngineConfig().with_overrides({"historical_ranges": {"L": [0.3], "E": [0.2, 0.4], "V": [0.2, 0.4]}})
        assert exc.value.details["config_key"] == "historical_ranges"

    def test_numeric_strings_are_coerced(self):
        config = EngineConfig().with_overrides({"num_tickets": "8", "pair_divergence": "0.25"})
        assert config.num_tickets == 8
        assert isinstance(config.num_tickets, int)
        assert config.pair_divergence == pytest.approx(0.25)

    def test_builder_rejects_mistyped_config(self):
        with pytest.raises(ConfigurationError):
            PortfolioBuilder(EngineConfig(draw_min="four"))


class TestEngineStatus:

    def test_status_fields(self):
        status = get_engine_status()

        assert status["methodology"] == "Core + Satellites"
        assert status["core_tickets"] == 4
        assert set(status["outcomes"]) == {"L", "E", "V"}
