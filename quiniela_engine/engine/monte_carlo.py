# quiniela_engine/engine/monte_carlo.py
"""
Monte Carlo estimation of Pr[hits >= threshold] per ticket.

Trials are vectorized with numpy and split into fixed-size chunks. Every
chunk owns a generator spawned from a SeedSequence, so chunks can run on a
thread pool without sharing generator state, and the result does not depend
on the number of workers.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Union

import numpy as np

from .models import ClassifiedMatch, Outcome, Ticket, OUTCOME_ORDER
from ..config import EngineConfig, DEFAULT_CONFIG
from ..exceptions import InputError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 2500

SeedLike = Union[None, int, np.random.SeedSequence]
TicketLike = Union[Ticket, Sequence[Outcome]]

_OUTCOME_INDEX = {outcome: idx for idx, outcome in enumerate(OUTCOME_ORDER)}


def portfolio_hit_probability(probabilities: Sequence[float]) -> float:
    """
    1 - prod(1 - p_i).

    Treats tickets as independent even though they share matches, so this
    overstates the true joint probability.
    """
    miss = 1.0
    for p in probabilities:
        miss *= (1.0 - p)
    return 1.0 - miss


# Child streams of a run seed, in the order PortfolioBuilder spawns them
CORE_STREAM, SATELLITE_STREAM, ESTIMATOR_STREAM = range(3)


def stage_seed(seed: Optional[int], stream: int) -> np.random.SeedSequence:
    """Same sequence as ``SeedSequence(seed).spawn(3)[stream]`` for an integer seed."""
    return np.random.SeedSequence(seed, spawn_key=(stream,))


def _as_seed_sequence(seed: SeedLike) -> np.random.SeedSequence:
    if isinstance(seed, np.random.SeedSequence):
        return seed
    return np.random.SeedSequence(seed)


def _chunk_sizes(trials: int, chunk_size: int) -> List[int]:
    full, rest = divmod(trials, chunk_size)
    return [chunk_size] * full + ([rest] if rest else [])


class MonteCarloEstimator:
    """
    Per-ticket hit-probability estimator.

    Each call to ``estimate`` without an explicit seed consumes the next child
    of the estimator's seed sequence, so a fixed seed and a fixed call order
    reproduce the same estimates.
    """

    def __init__(
        self,
        config: EngineConfig = DEFAULT_CONFIG,
        seed: SeedLike = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        self.config = config
        self.num_trials = config.monte_carlo_trials
        self.hit_threshold = config.hit_threshold
        self.max_workers = config.max_workers
        self.chunk_size = max(1, int(chunk_size))
        self._seed_seq = _as_seed_sequence(seed if seed is not None else config.seed)

        logger.debug(
            f"[MONTE CARLO] Estimator ready | trials={self.num_trials} "
            f"threshold={self.hit_threshold} workers={self.max_workers}"
        )

    @property
    def seed_sequence(self) -> np.random.SeedSequence:
        return self._seed_seq

    def _next_seed(self, seed: SeedLike) -> np.random.SeedSequence:
        if seed is not None:
            return _as_seed_sequence(seed)
        return self._seed_seq.spawn(1)[0]

    @staticmethod
    def _outcomes(ticket: TicketLike) -> Sequence[Outcome]:
        return ticket.outcomes if isinstance(ticket, Ticket) else ticket

    @staticmethod
    def _check_alignment(outcomes: Sequence[Outcome], matches: Sequence[ClassifiedMatch]) -> None:
        if len(outcomes) != len(matches):
            raise InputError(
                f"Ticket has {len(outcomes)} outcomes for {len(matches)} matches",
                field="ticket"
            )

    def pick_probabilities(
        self,
        ticket: TicketLike,
        matches: Sequence[ClassifiedMatch]
    ) -> np.ndarray:
        """Calibrated probability of each slot's chosen outcome."""
        outcomes = self._outcomes(ticket)
        self._check_alignment(outcomes, matches)
        return np.array(
            [m.probability_of(o) for m, o in zip(matches, outcomes)],
            dtype=float
        )

    def _count_chunk(self, probs: np.ndarray, trials: int, seed_seq: np.random.SeedSequence) -> int:
        rng = np.random.default_rng(seed_seq)
        samples = rng.random((trials, probs.size))
        hits = (samples < probs).sum(axis=1)
        return int(np.count_nonzero(hits >= self.hit_threshold))

    def _run_chunks(self, work, sizes: List[int], seed_seq: np.random.SeedSequence) -> int:
        children = seed_seq.spawn(len(sizes))
        workers = min(self.max_workers, len(sizes))
        if workers <= 1:
            return sum(work(size, child) for size, child in zip(sizes, children))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return sum(executor.map(work, sizes, children))

    def estimate(
        self,
        ticket: TicketLike,
        matches: Sequence[ClassifiedMatch],
        trials: Optional[int] = None,
        seed: SeedLike = None
    ) -> float:
        """
        Estimate Pr[hits >= hit_threshold] for one ticket.

        Args:
            ticket: Ticket or outcome sequence aligned with ``matches``
            matches: Classified matches
            trials: Number of trials (defaults to config.monte_carlo_trials)
            seed: Explicit seed for this estimate; otherwise the next child
                of the estimator's seed sequence is used

        Returns:
            Fraction of trials reaching the threshold
        """
        trials = self.num_trials if trials is None else int(trials)
        if trials < 1:
            raise InputError(f"Monte Carlo needs at least one trial (got {trials})", field="trials")

        probs = self.pick_probabilities(ticket, matches)
        sizes = _chunk_sizes(trials, self.chunk_size)
        satisfied = self._run_chunks(
            lambda size, child: self._count_chunk(probs, size, child),
            sizes,
            self._next_seed(seed)
        )
        return satisfied / trials

    def estimate_tickets(
        self,
        tickets: Sequence[Ticket],
        matches: Sequence[ClassifiedMatch]
    ) -> List[Ticket]:
        """Attach a fresh estimate to every ticket, in order."""
        estimated = [t.with_hit_probability(self.estimate(t, matches)) for t in tickets]
        for ticket in estimated:
            logger.debug(
                f"[MONTE CARLO] {ticket.ticket_id}: Pr[>={self.hit_threshold}] = "
                f"{ticket.hit_probability:.4f}"
            )
        return estimated

    def _count_joint_chunk(
        self,
        cumulative: np.ndarray,
        picks: np.ndarray,
        trials: int,
        seed_seq: np.random.SeedSequence
    ) -> int:
        rng = np.random.default_rng(seed_seq)
        u = rng.random((trials, cumulative.shape[0]))
        # Sampled outcome index per (trial, match): 0 home, 1 draw, 2 away
        results = (u[:, :, None] >= cumulative[None, :, :]).sum(axis=2)
        hits = (results[:, None, :] == picks[None, :, :]).sum(axis=2)
        return int(np.count_nonzero((hits >= self.hit_threshold).any(axis=1)))

    def joint_hit_probability(
        self,
        tickets: Sequence[Ticket],
        matches: Sequence[ClassifiedMatch],
        trials: Optional[int] = None,
        seed: SeedLike = None
    ) -> float:
        """
        Pr[at least one ticket reaches the threshold], sampling one set of
        match results per trial and scoring every ticket against it.
        """
        if not tickets:
            return 0.0
        trials = self.num_trials if trials is None else int(trials)
        if trials < 1:
            raise InputError(f"Monte Carlo needs at least one trial (got {trials})", field="trials")

        for ticket in tickets:
            self._check_alignment(ticket.outcomes, matches)

        # Cumulative boundaries home | home+draw per match
        cumulative = np.array(
            [[m.calibrated.p_local, m.calibrated.p_local + m.calibrated.p_draw] for m in matches],
            dtype=float
        )
        picks = np.array(
            [[_OUTCOME_INDEX[o] for o in ticket.outcomes] for ticket in tickets],
            dtype=np.int8
        )
        sizes = _chunk_sizes(trials, self.chunk_size)
        satisfied = self._run_chunks(
            lambda size, child: self._count_joint_chunk(cumulative, picks, size, child),
            sizes,
            self._next_seed(seed)
        )
        probability = satisfied / trials
        logger.info(
            f"[MONTE CARLO] Joint portfolio Pr[>={self.hit_threshold}] over "
            f"{len(tickets)} tickets: {probability:.4f} ({trials} trials)"
        )
        return probability
