"""
pytest configuration and fixtures for roster share tests.

Provides reusable fixtures for:
- Deterministic placeholder values on decode
- Sample chara records
- Hypothesis property-based testing configuration
"""

import pytest
import os
import random
import sys
from datetime import datetime
from pathlib import Path

# Add project paths
sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from roster_codec import CharaRecord, ParentRecord, PlaceholderProvider, SkillEntry

# Configure Hypothesis profiles
from hypothesis import settings, Verbosity, Phase

# Default profile: balanced speed and coverage
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
)

# CI profile: more thorough testing
settings.register_profile(
    "ci",
    max_examples=500,
    deadline=None,
    suppress_health_check=[],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)

# Dev profile: fast iteration
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
)

# Debug profile: verbose output
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


FIXED_TIME = datetime(2024, 5, 1, 12, 30, 0)


@pytest.fixture
def placeholders():
    """Placeholder provider with a fixed clock and seeded RNG."""
    return PlaceholderProvider(clock=lambda: FIXED_TIME, rng=random.Random(1234))


@pytest.fixture
def sample_chara():
    """A fully populated chara with two parents."""
    return CharaRecord(
        card_id=100101,
        talent_level=4,
        speed=1200,
        stamina=800,
        power=950,
        guts=400,
        wiz=600,
        proper_distance_short=2,
        proper_distance_mile=6,
        proper_distance_middle=7,
        proper_distance_long=5,
        proper_ground_turf=8,
        proper_ground_dirt=1,
        proper_running_style_nige=3,
        proper_running_style_senko=8,
        proper_running_style_sashi=6,
        proper_running_style_oikomi=2,
        factor_id_array=[101, 2002, 30301, 1000001],
        skill_array=[
            SkillEntry(skill_id=20012, level=1),
            SkillEntry(skill_id=10071, level=3),
        ],
        succession_chara_array=[
            ParentRecord(card_id=100201, talent_level=5, factor_id_array=[101, 3302]),
            ParentRecord(card_id=100301, talent_level=2, factor_id_array=[]),
        ],
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
