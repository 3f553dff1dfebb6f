"""Shared pytest fixtures for bankrecon tests."""

import logging
import os
import tempfile

import pytest

from bankrecon.database.factories import create_sqlite_database


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def package_logs(caplog):
    """Capture bankrecon log records even after the CLI configured logging.

    The CLI stops propagation at the package logger, so the capture handler
    is attached there directly.
    """
    logger = logging.getLogger("bankrecon")
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger="bankrecon")
    yield caplog
    logger.removeHandler(caplog.handler)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
