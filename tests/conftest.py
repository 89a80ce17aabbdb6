"""Shared fixtures."""

import pytest

import hypernotebook.render  # noqa: F401
from hypernotebook.render.registry import renderer_registry


@pytest.fixture
def registry():
    """The global registry with every built-in renderer registered."""
    return renderer_registry


@pytest.fixture
def badge_text():
    """The single-badge response from the protocol examples."""
    return (
        "Here is a result:\n"
        "```json\n"
        '{"id":"x","type":"badge","properties":{"text":"Done"}}\n'
        "```"
    )
