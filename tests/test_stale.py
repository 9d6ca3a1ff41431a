"""Tests of tasks/stale.py: marking and closing inactive items."""

import datetime

import arrow
import pytest
from freezegun import freeze_time

from repo_hygiene.config import StaleConfig
from repo_hygiene.host import DryRunHost, GitHubHost
from repo_hygiene.tasks.stale import StaleAction, process_stale_items, stale_action, stale_thresholds
from repo_hygiene.utils import HostCallFailure


NOW = arrow.get("2024-06-15T12:00:00Z")

CONFIG = StaleConfig(
    days_before_stale=60,
    days_before_close=7,
    exempt_labels=frozenset({"pinned", "security"}),
    stale_label="stale",
    stale_message="This has been quiet for a while.",
    close_message="Closing this for inactivity.",
)


def days_ago(days):
    return NOW.shift(days=-days).naive


def test_thresholds():
    stale_threshold, close_threshold = stale_thresholds(NOW, CONFIG)
    assert stale_threshold == arrow.get("2024-04-16T12:00:00Z")
    assert close_threshold == arrow.get("2024-04-09T12:00:00Z")


@pytest.mark.parametrize("labels, days, action", [
    ([], 61, StaleAction.MARK_STALE),
    ([], 59, StaleAction.NONE),
    (["stale"], 68, StaleAction.CLOSE),
    (["stale"], 59, StaleAction.UNMARK),
    (["stale"], 60, StaleAction.UNMARK),
    # Stale, but not yet past the close threshold.
    (["stale"], 61, StaleAction.NONE),
    (["stale"], 67, StaleAction.NONE),
    (["pinned"], 100, StaleAction.EXEMPT),
    (["stale", "security"], 100, StaleAction.EXEMPT),
    (["bug"], 61, StaleAction.MARK_STALE),
])
def test_stale_action(labels, days, action):
    updated_at = NOW.shift(days=-days)
    assert stale_action(labels, updated_at, NOW, CONFIG) == action


def test_stale_action_with_github_timestamps():
    assert stale_action([], "2024-01-01T00:00:00Z", "2024-06-15T00:00:00Z", CONFIG) == StaleAction.MARK_STALE
    assert stale_action([], datetime.datetime(2024, 6, 1), NOW, CONFIG) == StaleAction.NONE


@pytest.fixture
def host(fake_github):
    return GitHubHost()


@pytest.fixture
def scenario_repo(fake_repo):
    fake_repo.make_issue(number=1, updated_at=days_ago(61))
    fake_repo.make_issue(number=2, updated_at=days_ago(68), labels=["stale"])
    fake_repo.make_pull_request(number=3, updated_at=days_ago(59), labels=["stale"])
    fake_repo.make_issue(number=4, updated_at=days_ago(5))
    fake_repo.make_issue(number=5, updated_at=days_ago(400), labels=["pinned"])
    fake_repo.make_issue(number=6, updated_at=days_ago(400), state="closed")
    return fake_repo


@pytest.mark.flaky_github
def test_process_stale_items(host, scenario_repo):
    result = process_stale_items(host, CONFIG, "an-org", "a-repo", now=NOW)

    assert result.ok
    assert result.actions == {
        1: StaleAction.MARK_STALE,
        2: StaleAction.CLOSE,
        3: StaleAction.UNMARK,
        4: StaleAction.NONE,
        5: StaleAction.EXEMPT,
    }

    marked = scenario_repo.get_issue(1)
    assert marked.labels == {"stale"}
    assert [c.body for c in marked.comments] == ["This has been quiet for a while."]
    assert marked.state == "open"

    closed = scenario_repo.get_issue(2)
    assert closed.state == "closed"
    assert [c.body for c in closed.comments] == ["Closing this for inactivity."]

    unmarked = scenario_repo.get_issue(3)
    assert unmarked.labels == set()
    assert unmarked.comments == []

    for num in [4, 5, 6]:
        assert scenario_repo.get_issue(num).comments == []
    assert scenario_repo.get_issue(5).labels == {"pinned"}


@pytest.mark.flaky_github
def test_sweep_twice(host, fake_github, scenario_repo):
    process_stale_items(host, CONFIG, "an-org", "a-repo", now=NOW)
    fake_github.reset_mock()

    result = process_stale_items(host, CONFIG, "an-org", "a-repo", now=NOW)

    assert result.ok
    assert result.numbers_with(StaleAction.MARK_STALE) == []
    assert result.numbers_with(StaleAction.CLOSE) == []
    assert result.numbers_with(StaleAction.UNMARK) == []
    fake_github.assert_readonly()


def test_no_messages_no_comments(host, fake_github, scenario_repo):
    config = StaleConfig(exempt_labels=frozenset({"pinned"}), stale_message=None, close_message=None)
    process_stale_items(host, config, "an-org", "a-repo", now=NOW)
    assert scenario_repo.get_issue(1).labels == {"stale"}
    assert scenario_repo.get_issue(2).state == "closed"
    assert fake_github.requests_made(r"/comments$") == []


def test_uses_current_time(host, fake_repo):
    with freeze_time("2024-06-15 12:00:00"):
        fake_repo.make_issue(number=1)
    with freeze_time("2024-09-01 12:00:00"):
        result = process_stale_items(host, CONFIG, "an-org", "a-repo")
    assert result.numbers_with(StaleAction.MARK_STALE) == [1]


def test_failures_are_isolated(host, fake_github, scenario_repo, requests_mocker):
    requests_mocker.post("https://api.github.com/repos/an-org/a-repo/issues/1/labels", status_code=500)

    result = process_stale_items(host, CONFIG, "an-org", "a-repo", now=NOW)

    assert not result.ok
    assert list(result.errors) == [1]
    assert "add_labels failed for an-org/a-repo#1" in result.errors[1]
    assert 1 not in result.actions
    # The other items were still handled.
    assert result.actions[2] == StaleAction.CLOSE
    assert result.actions[3] == StaleAction.UNMARK
    assert scenario_repo.get_issue(2).state == "closed"


def test_listing_failure_is_raised(host, fake_repo, requests_mocker):
    requests_mocker.get("https://api.github.com/repos/an-org/a-repo/issues", status_code=500)
    with pytest.raises(HostCallFailure, match="get_issues failed for an-org/a-repo"):
        process_stale_items(host, CONFIG, "an-org", "a-repo", now=NOW)


def test_dry_run(fake_github, scenario_repo):
    host = DryRunHost()
    result = process_stale_items(host, CONFIG, "an-org", "a-repo", now=NOW)
    assert result.numbers_with(StaleAction.CLOSE) == [2]
    fake_github.assert_readonly()
    assert [name for name, _ in host.action_calls] == [
        "add_labels", "create_comment", "create_comment", "close_issue", "remove_label",
    ]
    assert scenario_repo.get_issue(2).state == "open"
