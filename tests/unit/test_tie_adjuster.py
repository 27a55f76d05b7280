"""Unit tests for draw-count rebalancing."""

from quiniela_engine.config import EngineConfig
from quiniela_engine.engine import Outcome, add_shared_draws, adjust_draws
from quiniela_engine.engine.models import count_draws


class TestAdjustDraws:

    def test_adds_likeliest_draw_when_short(self, classified, config):
        # Suggested outcomes carry 3 draws (the draw-leaning slots)
        outcomes = [cm.suggested_outcome for cm in classified]
        assert count_draws(outcomes) == 3

        adjusted = adjust_draws(outcomes, classified, config)

        assert count_draws(adjusted) == config.draw_min
        # Slot 11 has the highest draw probability among non-draw slots
        assert adjusted[10] is Outcome.DRAW
        changed = [i for i, (a, b) in enumerate(zip(outcomes, adjusted)) if a is not b]
        assert changed == [10], f"Only slot 11 should change, got {changed}"

    def test_removes_least_likely_draws_when_over(self, classified, config):
        outcomes = [Outcome.DRAW] * 14

        adjusted = adjust_draws(outcomes, classified, config)

        assert count_draws(adjusted) == config.draw_max
        kept = {i for i, o in enumerate(adjusted) if o is Outcome.DRAW}
        assert {7, 8, 9, 10, 12} <= kept, f"High draw-probability slots should stay draws, kept {kept}"
        for i in set(range(14)) - kept:
            assert adjusted[i] is classified[i].suggested_outcome

    def test_within_window_is_unchanged(self, classified, config):
        outcomes = [cm.suggested_outcome for cm in classified]
        outcomes[10] = Outcome.DRAW
        assert adjust_draws(outcomes, classified, config) == outcomes

    def test_input_is_not_mutated(self, classified, config):
        outcomes = [Outcome.DRAW] * 14
        adjust_draws(outcomes, classified, config)
        assert outcomes == [Outcome.DRAW] * 14

    def test_locked_slots_never_change(self, classified, config):
        outcomes = [cm.suggested_outcome for cm in classified]
        adjusted = adjust_draws(outcomes, classified, config, locked=frozenset([10, 12]))

        assert adjusted[10] is outcomes[10]
        assert adjusted[12] is outcomes[12]
        assert count_draws(adjusted) == config.draw_min

    def test_short_of_candidates_stays_below_minimum(self, classified):
        strict = EngineConfig(tie_candidate_min_draw=0.50)
        outcomes = [cm.suggested_outcome for cm in classified]

        adjusted = adjust_draws(outcomes, classified, strict)

        assert count_draws(adjusted) == 3, "No slot clears the candidate floor"
        assert adjusted == outcomes

    def test_locked_draws_cannot_be_removed(self, classified, config):
        outcomes = [Outcome.DRAW] * 14
        adjusted = adjust_draws(outcomes, classified, config, locked=frozenset(range(10)))
        # Only slots 11-14 are free; 10 locked draws remain
        assert count_draws(adjusted) == 10


class TestAddSharedDraws:

    def test_converts_same_slots_in_every_ticket(self, classified, config):
        base = [cm.suggested_outcome for cm in classified]
        # Strip the draw-leaning draws so both tickets need more
        for slot in (7, 8, 9):
            base[slot] = Outcome.HOME
        other = list(base)
        other[3] = classified[3].alternative_outcome

        first, second = add_shared_draws([base, other], classified, config, slots=frozenset(range(14)))

        assert count_draws(first) >= config.draw_min
        assert count_draws(second) >= config.draw_min
        for slot in set(range(14)) - {3}:
            assert first[slot] is second[slot], f"Tickets disagree on slot {slot + 1}"

    def test_only_listed_slots_change(self, classified):
        floor = EngineConfig(tie_candidate_min_draw=0.30)
        outcomes = [Outcome.HOME] * 14
        slots = frozenset([0, 7, 8])

        (adjusted,) = add_shared_draws([outcomes], classified, floor, slots=slots)

        changed = {i for i, (a, b) in enumerate(zip(outcomes, adjusted)) if a is not b}
        assert changed <= slots
        assert changed == {7, 8}, "Slot 1 is below the draw candidate floor"

    def test_no_change_when_every_ticket_has_enough(self, classified, config):
        outcomes = [Outcome.DRAW] * 5 + [Outcome.HOME] * 9
        assert add_shared_draws([outcomes], classified, config, slots=frozenset(range(14))) == [outcomes]
