"""
The repository host: reading and writing issues, pull requests and labels on GitHub.

Every method raises HostCallFailure if GitHub can't do what was asked,
except for the contributor lookups in `get_user_info`, which fall back to
False.
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import quote

import requests
from glom import glom

from repo_hygiene.auth import get_github_session
from repo_hygiene.types import ContributorSignals, IssueDict, ItemId, LabelDict, PrFileDict
from repo_hygiene.utils import (
    HostCallFailure,
    log_check_response,
    paginated_get,
    retry_get,
    text_summary,
)

logger = logging.getLogger(__name__)

# Collaborator permissions that make someone a maintainer.
MAINTAINER_PERMISSIONS = {"admin", "write"}


class GitHubHost:
    """
    Implementation of the host operations the engines need, using the GitHub REST API.
    """

    def __init__(self, session=None):
        self.session = session or get_github_session()

    def _request(
        self, operation: str, target, method: str, url: str, retry: bool = True, **kwargs
    ) -> requests.Response:
        try:
            if method == "GET" and retry:
                resp = retry_get(self.session, url, **kwargs)
            else:
                resp = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise HostCallFailure(operation, str(target), str(exc)) from exc
        log_check_response(resp, operation, str(target))
        return resp

    # Reading.

    def get_issue(self, owner: str, repo: str, number: int) -> IssueDict:
        """Get an issue or pull request, as the issues API describes it."""
        item = ItemId.from_parts(owner, repo, number)
        url = f"/repos/{item.full_name}/issues/{number}"
        return self._request("get_issue", item, "GET", url).json()

    def get_issues(self, owner: str, repo: str, state: str = "open") -> List[IssueDict]:
        """
        Get all the issues and pull requests in a repo with a given state.
        """
        url = f"/repos/{owner}/{repo}/issues?state={state}"
        return list(paginated_get(
            url, session=self.session, operation="get_issues", target=f"{owner}/{repo}",
        ))

    def get_pr_files(self, owner: str, repo: str, number: int) -> List[PrFileDict]:
        """Get the changed files in a pull request."""
        item = ItemId.from_parts(owner, repo, number)
        url = f"/repos/{item.full_name}/pulls/{number}/files"
        return list(paginated_get(url, session=self.session, operation="get_pr_files", target=str(item)))

    def get_comments(self, owner: str, repo: str, number: int) -> List[Dict]:
        """Get the comments on an issue or pull request, oldest first."""
        item = ItemId.from_parts(owner, repo, number)
        url = f"/repos/{item.full_name}/issues/{number}/comments"
        return list(paginated_get(url, session=self.session, operation="get_comments", target=str(item)))

    def get_repo_labels(self, owner: str, repo: str) -> List[LabelDict]:
        url = f"/repos/{owner}/{repo}/labels"
        return list(paginated_get(
            url, session=self.session, operation="get_repo_labels", target=f"{owner}/{repo}",
        ))

    def get_user_info(
        self,
        owner: str,
        repo: str,
        number: int,
        author: Optional[str] = None,
    ) -> ContributorSignals:
        """
        Find out about the author of an item.

        The author is a maintainer if they have admin or write permission on
        the repo.  They are a first-time contributor if they have authored at
        most one issue or pull request in the repo.  If either lookup fails,
        that signal is False.

        `author` is the login of the item's author, if the caller already knows it.
        """
        item = ItemId.from_parts(owner, repo, number)
        if author is None:
            try:
                author = glom(self.get_issue(owner, repo, number), "user.login", default=None)
            except HostCallFailure:
                logger.exception(f"Couldn't get the author of {item}")
                return ContributorSignals()
        if not author:
            logger.warning(f"No author for {item}")
            return ContributorSignals()

        is_maintainer = False
        try:
            resp = self._request(
                "get_collaborator_permission", item, "GET",
                f"/repos/{item.full_name}/collaborators/{quote(author)}/permission",
                retry=False,
            )
            is_maintainer = resp.json().get("permission") in MAINTAINER_PERMISSIONS
        except (HostCallFailure, ValueError) as exc:
            logger.warning(f"Couldn't get permission of @{author} on {item.full_name}: {exc}")

        is_first_time = False
        try:
            resp = self._request(
                "search_author_items", item, "GET", "/search/issues",
                params={"q": f"repo:{item.full_name} author:{author}", "per_page": 2},
                retry=False,
            )
            is_first_time = resp.json()["total_count"] <= 1
        except (HostCallFailure, KeyError, ValueError) as exc:
            logger.warning(f"Couldn't search for items by @{author} in {item.full_name}: {exc}")

        return ContributorSignals(is_first_time_contributor=is_first_time, is_maintainer=is_maintainer)

    # Writing.

    def add_labels(self, owner: str, repo: str, number: int, labels: List[str]) -> None:
        item = ItemId.from_parts(owner, repo, number)
        logger.info(f"Adding labels to {item}: {labels}")
        url = f"/repos/{item.full_name}/issues/{number}/labels"
        self._request("add_labels", item, "POST", url, json={"labels": list(labels)})

    def remove_label(self, owner: str, repo: str, number: int, label: str) -> None:
        item = ItemId.from_parts(owner, repo, number)
        logger.info(f"Removing label {label!r} from {item}")
        url = f"/repos/{item.full_name}/issues/{number}/labels/{quote(label, safe='')}"
        self._request("remove_label", item, "DELETE", url)

    def create_comment(self, owner: str, repo: str, number: int, body: str) -> None:
        item = ItemId.from_parts(owner, repo, number)
        logger.info(f"Commenting on {item}: {text_summary(body, 90)!r}")
        url = f"/repos/{item.full_name}/issues/{number}/comments"
        self._request("create_comment", item, "POST", url, json={"body": body})

    def close_issue(self, owner: str, repo: str, number: int) -> None:
        item = ItemId.from_parts(owner, repo, number)
        logger.info(f"Closing {item}")
        url = f"/repos/{item.full_name}/issues/{number}"
        self._request("close_issue", item, "PATCH", url, json={"state": "closed"})

    def create_label(self, owner: str, repo: str, name: str, color: str, description: str = "") -> None:
        logger.info(f"Creating label {name!r} in {owner}/{repo}")
        url = f"/repos/{owner}/{repo}/labels"
        body = {"name": name, "color": color, "description": description}
        self._request("create_label", f"{owner}/{repo}", "POST", url, json=body)

    def create_status(
        self,
        owner: str,
        repo: str,
        sha: str,
        state: str,
        description: str = "",
        context: str = "",
    ) -> None:
        logger.info(f"Setting status {context!r} on {owner}/{repo}@{sha[:10]} to {state}")
        url = f"/repos/{owner}/{repo}/statuses/{sha}"
        body = {"state": state, "description": description, "context": context}
        self._request("create_status", f"{owner}/{repo}@{sha}", "POST", url, json=body)


class DryRunHost(GitHubHost):
    """
    A host for dry runs: reads from GitHub, but only records the writes.

    The writes are in `action_calls` as (method_name, kwargs) pairs.
    """

    def __init__(self, session=None):
        super().__init__(session)
        self.action_calls: List[tuple] = []

    def _record(self, method_name: str, /, **kwargs) -> None:
        logger.info(f"Dry run, not doing: {method_name} {kwargs}")
        self.action_calls.append((method_name, kwargs))

    def add_labels(self, owner, repo, number, labels):
        self._record("add_labels", owner=owner, repo=repo, number=number, labels=list(labels))

    def remove_label(self, owner, repo, number, label):
        self._record("remove_label", owner=owner, repo=repo, number=number, label=label)

    def create_comment(self, owner, repo, number, body):
        self._record("create_comment", owner=owner, repo=repo, number=number, body=body)

    def close_issue(self, owner, repo, number):
        self._record("close_issue", owner=owner, repo=repo, number=number)

    def create_label(self, owner, repo, name, color, description=""):
        self._record("create_label", owner=owner, repo=repo, name=name, color=color, description=description)

    def create_status(self, owner, repo, sha, state, description="", context=""):
        self._record(
            "create_status", owner=owner, repo=repo, sha=sha,
            state=state, description=description, context=context,
        )

    def actions_by_name(self) -> Dict[str, List[Dict]]:
        """Group the recorded writes by method name."""
        grouped: Dict[str, List[Dict]] = {}
        for name, kwargs in self.action_calls:
            grouped.setdefault(name, []).append(kwargs)
        return grouped
