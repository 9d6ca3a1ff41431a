"""Automatically run by pytest to set up test infrastructure."""

import pytest
import requests_mock

import repo_hygiene.utils

from . import settings as test_settings
from .fake_github import FakeGitHub, FakeRawGitHub


@pytest.fixture
def requests_mocker():
    """Make requests_mock available as a fixture."""
    mocker = requests_mock.Mocker(real_http=False, case_sensitive=True)
    mocker.start()
    try:
        yield mocker
    finally:
        mocker.stop()


def pytest_addoption(parser):
    parser.addoption(
        "--percent-404",
        action="store",
        help="What percent of HTTP requests should fail with a 404",
        default="0",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "flaky_github: tests that should pass even when GitHub returns spurious 404s",
    )


@pytest.fixture(autouse=True)
def settings_for_tests(mocker):
    for name, value in vars(test_settings).items():
        if name.isupper():
            mocker.patch(f"repo_hygiene.settings.{name}", value)


@pytest.fixture
def fake_github(pytestconfig, mocker, requests_mocker):
    fraction_404 = float(pytestconfig.getoption("percent_404")) / 100.0
    the_fake_github = FakeGitHub(login="hygiene-bot", fraction_404=fraction_404)
    the_fake_github.install_mocks(requests_mocker)
    FakeRawGitHub(the_fake_github).install_mocks(requests_mocker)
    # Make the retry sleep a no-op so it won't slow the tests.
    mocker.patch("repo_hygiene.utils.retry_sleep", lambda x: None)
    return the_fake_github


@pytest.fixture
def fake_repo(fake_github):
    """An empty repo in the fake GitHub."""
    return fake_github.make_repo("an-org", "a-repo")


@pytest.fixture(autouse=True)
def reset_all_memoized_functions():
    """Clears the values cached by @memoize_timed before each test. Applied automatically."""
    repo_hygiene.utils.clear_memoized_values()
