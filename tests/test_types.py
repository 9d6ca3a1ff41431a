"""Tests of types.py, and the package setup."""

import repo_hygiene
from repo_hygiene.types import ItemId


def test_item_id():
    item = ItemId.from_parts("an-org", "a-repo", 17)
    assert item == ItemId("an-org/a-repo", 17)
    assert str(item) == "an-org/a-repo#17"
    assert item.owner == "an-org"
    assert item.repo == "a-repo"
    assert {item: 1}[ItemId("an-org/a-repo", 17)] == 1


def test_init_sentry(mocker, monkeypatch):
    init = mocker.patch("repo_hygiene.sentry_sdk.init")
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    assert repo_hygiene.init_sentry() is False
    init.assert_not_called()

    monkeypatch.setenv("SENTRY_DSN", "https://key@sentry.example.com/1")
    assert repo_hygiene.init_sentry() is True
    init.assert_called_once_with(release=f"repo-hygiene@{repo_hygiene.__version__}")
