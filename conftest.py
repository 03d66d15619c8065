"""Pytest configuration for Paranoid Python Toolkit."""

import pytest


def pytest_configure(config):
    """Configure pytest with custom settings."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "paranoid: mark test as exercising soft deletion semantics"
    )


# Configure pytest to ignore certain warnings
pytest.mark.filterwarnings("ignore::pytest.PytestCollectionWarning")
