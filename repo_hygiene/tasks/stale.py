"""
Marking inactive issues and pull requests as stale, and closing them.

There's no stored state: where an item is in its lifecycle is worked out
each time from its labels and when it was last updated.

    Active        no stale label
    Stale         stale label, updated within the close window
    PendingClose  stale label, not updated since the close threshold
    Closed        closed on GitHub, never seen again because we only look at open items

Running the sweep twice in a row does nothing the second time.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple, Union

import arrow

from repo_hygiene.config import StaleConfig
from repo_hygiene.host import GitHubHost
from repo_hygiene.tasks import logger
from repo_hygiene.types import IssueDict, ItemId
from repo_hygiene.utils import sentry_extra_context

Timestamp = Union[arrow.Arrow, datetime, str]


class StaleAction(Enum):
    """What to do with an item."""
    NONE = "none"
    EXEMPT = "exempt"
    MARK_STALE = "mark_stale"
    UNMARK = "unmark"
    CLOSE = "close"


def stale_thresholds(now: Timestamp, config: StaleConfig) -> Tuple[arrow.Arrow, arrow.Arrow]:
    """
    Compute (stale_threshold, close_threshold) for a moment in time.

    An item not updated since stale_threshold should be stale.  A stale item
    not updated since close_threshold should be closed.
    """
    now = arrow.get(now)
    stale_threshold = now.shift(days=-config.days_before_stale)
    close_threshold = now.shift(days=-(config.days_before_stale + config.days_before_close))
    return stale_threshold, close_threshold


def stale_action(
    labels: Iterable[str],
    updated_at: Timestamp,
    now: Timestamp,
    config: StaleConfig,
) -> StaleAction:
    """
    Decide what to do with one item.  This only decides, it doesn't act.
    """
    labels = set(labels)
    if labels & config.exempt_labels:
        return StaleAction.EXEMPT

    updated_at = arrow.get(updated_at)
    stale_threshold, close_threshold = stale_thresholds(now, config)
    is_stale = config.stale_label in labels

    if is_stale and updated_at < close_threshold:
        return StaleAction.CLOSE
    elif not is_stale and updated_at < stale_threshold:
        return StaleAction.MARK_STALE
    elif is_stale and updated_at >= stale_threshold:
        return StaleAction.UNMARK
    else:
        return StaleAction.NONE


@dataclass
class StaleSweepResult:
    """
    What happened during a sweep of a repo.
    """
    repo: str
    # The action taken on each item, by number.
    actions: Dict[int, StaleAction] = field(default_factory=dict)
    # Tracebacks of failures, by item number.
    errors: Dict[int, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def numbers_with(self, action: StaleAction):
        return sorted(num for num, act in self.actions.items() if act == action)


def apply_stale_action(
    host: GitHubHost,
    config: StaleConfig,
    item: ItemId,
    action: StaleAction,
) -> None:
    """
    Make the changes on GitHub for an action.
    """
    owner, repo, number = item.owner, item.repo, item.number
    if action == StaleAction.CLOSE:
        logger.info(f"Closing stale item {item}")
        if config.close_message:
            host.create_comment(owner, repo, number, config.close_message)
        host.close_issue(owner, repo, number)
    elif action == StaleAction.MARK_STALE:
        logger.info(f"Marking {item} as stale")
        host.add_labels(owner, repo, number, [config.stale_label])
        if config.stale_message:
            host.create_comment(owner, repo, number, config.stale_message)
    elif action == StaleAction.UNMARK:
        logger.info(f"Removing stale label from {item}")
        host.remove_label(owner, repo, number, config.stale_label)
    elif action == StaleAction.EXEMPT:
        logger.debug(f"Skipping {item} due to exempt label")


def process_stale_item(
    host: GitHubHost,
    config: StaleConfig,
    owner: str,
    repo: str,
    issue: IssueDict,
    now: Timestamp,
) -> StaleAction:
    item = ItemId.from_parts(owner, repo, issue["number"])
    labels = [lbl["name"] for lbl in issue.get("labels", [])]
    action = stale_action(labels, issue["updated_at"], now, config)
    apply_stale_action(host, config, item, action)
    return action


def process_stale_items(
    host: GitHubHost,
    config: StaleConfig,
    owner: str,
    repo: str,
    now: Optional[Timestamp] = None,
) -> StaleSweepResult:
    """
    Sweep all the open issues and pull requests in a repo.

    A failure on one item is recorded in the result's `errors`, and the
    other items are still processed.  Failing to list the items at all is
    raised.
    """
    full_name = f"{owner}/{repo}"
    logger.info(f"Processing stale items for {full_name}")
    sentry_extra_context({"repo": full_name})
    now = arrow.utcnow() if now is None else arrow.get(now)

    result = StaleSweepResult(repo=full_name)
    for issue in host.get_issues(owner, repo, state="open"):
        number = issue["number"]
        try:
            result.actions[number] = process_stale_item(host, config, owner, repo, issue, now)
        except Exception:       # pylint: disable=broad-except
            logger.exception(f"Couldn't process {full_name}#{number}")
            result.errors[number] = traceback.format_exc()

    logger.info(
        "Completed stale items for {repo}: {marked} marked, {unmarked} unmarked, {closed} closed, {errors} errors".format(
            repo=full_name,
            marked=len(result.numbers_with(StaleAction.MARK_STALE)),
            unmarked=len(result.numbers_with(StaleAction.UNMARK)),
            closed=len(result.numbers_with(StaleAction.CLOSE)),
            errors=len(result.errors),
        )
    )
    return result
