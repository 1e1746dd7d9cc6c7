"""Shared pytest fixtures for the proposal review tests."""

import os
import sys

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# The API tests issue many requests from one client address
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")

from proposal_review.store import InMemoryStore  # noqa: E402

from factories import run, seed_proposal  # noqa: E402


@pytest.fixture
def store():
    """An empty in-memory record store."""
    return InMemoryStore()


@pytest.fixture
def seeded(store):
    """A proposal owned by user 1 with one collaborator per role and two questions."""
    return run(seed_proposal(store))
