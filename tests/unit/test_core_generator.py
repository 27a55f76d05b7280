"""Unit tests for core ticket generation."""

import numpy as np

from quiniela_engine.config import EngineConfig
from quiniela_engine.engine import (
    MonteCarloEstimator,
    Outcome,
    TicketKind,
    adjust_draws,
    classify_match,
    generate_core,
)
from quiniela_engine.engine.core_generator import apply_variation, build_base_outcomes
from quiniela_engine.engine.models import Match


class TestBaseOutcomes:

    def test_base_follows_categories(self, classified, category_slots):
        base = build_base_outcomes(classified)

        for slot in category_slots["draw_leaning"]:
            assert base[slot] is Outcome.DRAW
        for slot in category_slots["anchor"] + category_slots["divisor"] + category_slots["neutral"]:
            assert base[slot] is classified[slot].suggested_outcome

    def test_draw_leaning_forced_until_draw_max(self):
        # Draw ties the home side, so the suggested outcome is Home
        tied = Match("A", "B", 0.35, 0.35, 0.30)
        matches = [classify_match(tied, i) for i in range(3)]
        config = EngineConfig(num_matches=3, draw_min=0, draw_max=2)

        base = build_base_outcomes(matches, config)

        assert base == [Outcome.DRAW, Outcome.DRAW, Outcome.HOME]


class TestApplyVariation:

    def test_flips_two_plus_index_slots(self, classified):
        base = build_base_outcomes(classified)
        for variant in (1, 2, 3):
            varied = apply_variation(base, classified, variant, np.random.default_rng(variant))
            changed = [i for i, (a, b) in enumerate(zip(base, varied)) if a is not b]
            assert len(changed) == 2 + variant, f"Variant {variant} changed {changed}"

    def test_anchors_never_flip(self, classified, category_slots):
        base = build_base_outcomes(classified)
        for seed in range(20):
            varied = apply_variation(base, classified, 3, np.random.default_rng(seed))
            for slot in category_slots["anchor"]:
                assert varied[slot] is base[slot]

    def test_flip_takes_alternative(self, classified):
        base = build_base_outcomes(classified)
        varied = apply_variation(base, classified, 1, np.random.default_rng(0))
        for i, (a, b) in enumerate(zip(base, varied)):
            if a is not b:
                assert b is classified[i].alternative_outcome


class TestGenerateCore:

    def setup_method(self):
        self.config = EngineConfig(monte_carlo_trials=500, max_workers=1, seed=11)

    def test_four_tickets_of_fourteen(self, classified):
        tickets = generate_core(classified, self.config, rng=np.random.default_rng(3))

        assert [t.ticket_id for t in tickets] == ["Core-1", "Core-2", "Core-3", "Core-4"]
        assert all(t.kind is TicketKind.CORE for t in tickets)
        assert all(len(t) == 14 for t in tickets)

    def test_first_ticket_is_adjusted_base(self, classified):
        tickets = generate_core(classified, self.config, rng=np.random.default_rng(3))
        expected = adjust_draws(build_base_outcomes(classified, self.config), classified, self.config)
        assert list(tickets[0].outcomes) == expected

    def test_draw_counts_within_window(self, classified):
        for seed in range(10):
            tickets = generate_core(classified, self.config, rng=np.random.default_rng(seed))
            for ticket in tickets:
                assert self.config.draw_min <= ticket.draw_count <= self.config.draw_max, (
                    f"{ticket.ticket_id} has {ticket.draw_count} draws (seed {seed})"
                )

    def test_hit_probabilities_attached(self, classified):
        tickets = generate_core(classified, self.config, rng=np.random.default_rng(3))
        assert all(0.0 <= t.hit_probability <= 1.0 for t in tickets)

    def test_reproducible_with_same_streams(self, classified):
        def run():
            return generate_core(
                classified,
                self.config,
                rng=np.random.default_rng(5),
                estimator=MonteCarloEstimator(self.config, seed=99),
            )

        assert run() == run()
