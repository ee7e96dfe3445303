"""
Pytest configuration: default runs most tests; use --run-slow to include slow tests.
"""

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (live calls to image services). Default: skip them.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow", False):
        return
    skip_slow = pytest.mark.skip(reason="Slow test; run with --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def _isolated_environment(request, monkeypatch, tmp_path):
    """Keep unit tests away from real keys and the user's config file."""
    if request.node.get_closest_marker("integration"):
        return
    for var in (
        "HF_TOKEN",
        "HUGGINGFACE_API_KEY",
        "OPENAI_API_KEY",
        "STABILITY_API_KEY",
        "ZOOMBG_VERBOSITY",
        "ZOOMBG_DEBUG_API",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
