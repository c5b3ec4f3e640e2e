# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/

Engine fixtures:
- registry: fresh VariableRegistry (never the process-wide default)
- engine: ContextEngine over that registry, NOT bootstrapped, so tests can
  declare variables first and bootstrap with the overrides they need
"""

import os

import pytest
from hypothesis import Phase, Verbosity, settings

from weft.core.registry import VariableRegistry
from weft.engine.runtime import ContextEngine

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def registry() -> VariableRegistry:
    return VariableRegistry()


@pytest.fixture
def engine(registry: VariableRegistry) -> ContextEngine:
    """Un-bootstrapped engine over the test's own registry."""
    return ContextEngine(registry)
