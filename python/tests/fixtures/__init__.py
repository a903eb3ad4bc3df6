"""
Pytest fixtures for filestream tests.

Fixtures are organized by test category:
- files.py: sample files and fake handles for read/write/tail tests
- watcher.py: watched directories and event collection helpers
"""
