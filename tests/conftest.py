"""Shared fixtures for the engine tests."""
import pytest

import mode_config
import note_registry

@pytest.fixture
def geometry():
    return mode_config.DEFAULT_GEOMETRY


@pytest.fixture
def make_registry():
    def factory(mode_key="confucius", strict=True):
        mode = mode_config.get_mode(mode_key)
        return note_registry.NoteRegistry(active_lanes=mode.active_lanes, strict=strict)

    return factory
