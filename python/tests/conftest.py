"""
Pytest configuration and fixtures for filestream tests.

Specialized fixtures are organized in the fixtures/ directory:
- fixtures.files: Sample files and in-memory fake handles
- fixtures.watcher: Watched directories and event helpers
"""

import pytest

from filestream.blocking import Blocker

# Load fixture modules
pytest_plugins = [
    "tests.fixtures.files",
    "tests.fixtures.watcher",
]


@pytest.fixture
def blocker():
    """
    Private Blocker for a single test.

    Shut down after the test so worker threads don't accumulate.
    """
    b = Blocker(max_workers=4, thread_name_prefix="filestream-test")
    yield b
    b.shutdown(wait=True)
