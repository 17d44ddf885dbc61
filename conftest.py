"""Pytest configuration for soft-deletes."""


def pytest_configure(config):
    """Configure pytest with custom settings."""
    # Add custom markers
    config.addinivalue_line("markers", "cli: tests driving the command-line interface")
