from __future__ import annotations

from collections.abc import Iterator

import pytest

from battlecore.battle.skills import registry
from tests.helpers import ScriptedRng


@pytest.fixture(autouse=True)
def clear_skill_registry() -> Iterator[None]:
    """Passive / finale definitions are cached by template id; start each test clean."""
    registry.clear()
    yield
    registry.clear()


@pytest.fixture
def rng() -> ScriptedRng:
    return ScriptedRng()
