"""Root pytest configuration for all tests.

Import paths (`src` and the project root) are configured in pyproject.toml,
so `domain.*`, `infrastructure.*` and `tests.*` all resolve without an
install.
"""

import pytest

from domain.flyrock.value_objects import FlyrockConfig
from tests.conftest_utils import make_decks, make_hole


@pytest.fixture
def default_config() -> FlyrockConfig:
    """Dialog defaults: Richards & Moore, K=20, FoS=2, 40 iterations."""
    return FlyrockConfig()


@pytest.fixture
def charged_pattern():
    """Three holes in a row, 4 m apart, all charged identically."""
    holes = [make_hole(str(i), x=4.0 * i) for i in range(3)]
    charging = {hole.hole_id: make_decks() for hole in holes}
    return holes, charging
