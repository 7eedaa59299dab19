"""
Pytest configuration and fixtures for CodeCanvas tests.
"""

import os

import pytest
import pytest_asyncio
from hypothesis import Verbosity, settings

from codecanvas.core.config import RuntimeConfig
from codecanvas.rendering import ArtifactStore, RenderContainer, SandboxRenderer
from codecanvas.runtime import RuntimeSession

# Configure hypothesis settings for property-based testing
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,  # Disable deadline for slow operations
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture(autouse=True)
def _isolated_shared_session(monkeypatch):
    """Never leak the process-wide session between tests."""
    monkeypatch.setattr(RuntimeSession, "_shared", None)


@pytest.fixture
def bare_config():
    """Runtime config without capability packages, for fast sessions."""
    return RuntimeConfig(capabilities=[], timeout_seconds=5.0)


@pytest_asyncio.fixture
async def session(bare_config):
    """An initialized session without capability packages."""
    runtime = RuntimeSession(bare_config)
    await runtime.initialize()
    return runtime


@pytest.fixture
def store(tmp_path):
    artifacts = ArtifactStore(tmp_path / "artifacts")
    yield artifacts
    artifacts.cleanup()


@pytest.fixture
def renderer(store):
    return SandboxRenderer(store=store, clipboard=lambda uri: None, opener=lambda uri: True)


@pytest.fixture
def container():
    return RenderContainer()
