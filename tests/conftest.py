import os
from pathlib import Path

import pytest

# tests/storefront/<layer>/... -> marker
LAYER_MARKERS = {
    "domain": "domain",
    "application": "application",
    "integration": "integration",
    "bdd": "bdd",
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="domain.toml overlay to load the storefront with",
    )


def pytest_sessionstart(session):
    """Pick the config overlay before ``storefront.domain`` is first imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def _layer_of(path: Path) -> str | None:
    parts = path.parts
    if "storefront" not in parts:
        return None
    index = parts.index("storefront")
    return parts[index + 1] if index + 1 < len(parts) else None


def pytest_collection_modifyitems(config, items):
    for item in items:
        marker = LAYER_MARKERS.get(_layer_of(Path(str(item.fspath))))
        if marker is None:
            continue
        item.add_marker(getattr(pytest.mark, marker))
        # HTTP and Gherkin tests drive the full command path
        if marker in ("integration", "bdd") and item.get_closest_marker("fast") is None:
            item.add_marker(pytest.mark.slow)
