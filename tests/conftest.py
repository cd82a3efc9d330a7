import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Settings are read from the environment and cached on first use, so the
    test values must be in place before any domain module is imported.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("SHOPIFY_WEBHOOK_SECRET", "test-secret")
    os.environ.setdefault("BUSINESS_UTC_OFFSET_MINUTES", "330")
    os.environ.setdefault("ADMIN_UIDS", "admin-allow-listed")
    os.environ.setdefault("LOG_DIR", str(Path(session.config.rootpath) / "logs"))


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
