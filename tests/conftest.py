"""Pytest configuration and fixtures for the Quiniela Portfolio Engine tests."""

import os
import tempfile

# Keep rotating log files out of the package tree
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="quiniela_logs_"))

import numpy as np
import pytest

from quiniela_engine.config import EngineConfig
from quiniela_engine.engine import Match, calibrate_and_classify


# (local, draw, visitor) with no context signals; comments give the category
MIXED_CARD = [
    ("America", "Toluca", 0.70, 0.20, 0.10),      # anchor
    ("Tigres", "Puebla", 0.65, 0.22, 0.13),       # anchor
    ("Mazatlan", "Monterrey", 0.15, 0.20, 0.65),  # anchor
    ("Leon", "Pachuca", 0.45, 0.30, 0.25),        # divisor
    ("Santos", "Atlas", 0.42, 0.28, 0.30),        # divisor
    ("Necaxa", "Cruz Azul", 0.30, 0.25, 0.45),    # divisor
    ("Pumas", "Queretaro", 0.48, 0.27, 0.25),     # divisor
    ("Juarez", "Tijuana", 0.30, 0.38, 0.32),      # draw-leaning
    ("San Luis", "Chivas", 0.33, 0.36, 0.31),     # draw-leaning
    ("Betis", "Sevilla", 0.28, 0.40, 0.32),       # draw-leaning
    ("Celta", "Getafe", 0.37, 0.33, 0.30),        # neutral
    ("Lazio", "Roma", 0.36, 0.30, 0.34),          # neutral
    ("Porto", "Braga", 0.39, 0.31, 0.30),         # neutral
    ("Ajax", "Utrecht", 0.55, 0.25, 0.20),        # divisor
]

ANCHOR_SLOTS = [0, 1, 2]
DIVISOR_SLOTS = [3, 4, 5, 6, 13]
DRAW_LEANING_SLOTS = [7, 8, 9]
NEUTRAL_SLOTS = [10, 11, 12]


def make_match(local, visitor, p_local, p_draw, p_visitor, **context):
    return Match(
        local=local,
        visitor=visitor,
        p_local=p_local,
        p_draw=p_draw,
        p_visitor=p_visitor,
        **context
    )


@pytest.fixture
def raw_matches():
    """14 matches covering every category."""
    return [make_match(*row) for row in MIXED_CARD]


@pytest.fixture
def no_divisor_matches():
    """14 matches where no calibrated top probability falls in [0.40, 0.60)."""
    anchors = [make_match(f"Home {i}", f"Away {i}", 0.70, 0.20, 0.10) for i in range(7)]
    neutrals = [make_match(f"Home {i}", f"Away {i}", 0.37, 0.33, 0.30) for i in range(7, 14)]
    return anchors + neutrals


@pytest.fixture
def config():
    """Default configuration with a fixed seed."""
    return EngineConfig(monte_carlo_trials=1000, max_workers=1, seed=42)


@pytest.fixture
def rng():
    """Seeded generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def classified(raw_matches, config):
    return calibrate_and_classify(raw_matches, config)


@pytest.fixture
def match_rows():
    """Raw card as API payload dictionaries."""
    return [
        {
            "local": local,
            "visitor": visitor,
            "p_local": p_local,
            "p_draw": p_draw,
            "p_visitor": p_visitor,
        }
        for local, visitor, p_local, p_draw, p_visitor in MIXED_CARD
    ]


@pytest.fixture
def category_slots():
    """Slot positions per category on the mixed card."""
    return {
        "anchor": ANCHOR_SLOTS,
        "divisor": DIVISOR_SLOTS,
        "draw_leaning": DRAW_LEANING_SLOTS,
        "neutral": NEUTRAL_SLOTS,
    }
