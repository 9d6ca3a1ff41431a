"""
Checking that pull request titles follow the conventional commit format:

    <type>(<scope>): <description>

The result is reported as a commit status, and explained in a comment when
the title is wrong.
"""

import re
from dataclasses import dataclass, field
from typing import List

from repo_hygiene.bot_comments import BotComment, is_comment_kind, pr_title_invalid_comment
from repo_hygiene.config import PrTitleConfig
from repo_hygiene.host import GitHubHost
from repo_hygiene.matching import compile_pattern
from repo_hygiene.tasks import logger
from repo_hygiene.types import ItemId
from repo_hygiene.utils import sentry_extra_context

STATUS_CONTEXT = "repo-hygiene/pr-title"

TYPE_RX = re.compile(r"^([a-z]+)(\([a-z-]+\))?!?:")
SCOPE_RX = re.compile(r"^\w+\(([a-z-]+)\)!?:")
DESCRIPTION_RX = re.compile(r"^[a-z]+(\([a-z-]+\))?!?: .+")


@dataclass
class TitleValidation:
    valid: bool
    message: str
    errors: List[str] = field(default_factory=list)


def validate_title(title: str, config: PrTitleConfig) -> TitleValidation:
    """
    Check a title against the configured patterns, types and scopes.

    All the problems are reported, not just the first one.  Patterns are
    case-sensitive.
    """
    errors = []

    if config.patterns:
        regexes = [compile_pattern(p, ignore_case=False) for p in config.patterns]
        if not any(rx.search(title) for rx in regexes):
            errors.append("Title does not match the required format")

    match = TYPE_RX.match(title)
    if match:
        title_type = match.group(1)
        if title_type not in config.types:
            errors.append(
                f'Type "{title_type}" is not allowed. Allowed types: {", ".join(config.types)}'
            )

    if config.scopes:
        match = SCOPE_RX.match(title)
        if match:
            scope = match.group(1)
            if scope not in config.scopes:
                errors.append(
                    f'Scope "{scope}" is not allowed. Allowed scopes: {", ".join(config.scopes)}'
                )

    if not DESCRIPTION_RX.match(title):
        errors.append("Title must include a description after the type")

    if errors:
        return TitleValidation(valid=False, message="PR title format is invalid", errors=errors)
    return TitleValidation(valid=True, message="PR title format is valid")


def validate_pr_title(
    host: GitHubHost,
    config: PrTitleConfig,
    owner: str,
    repo: str,
    number: int,
    title: str,
    sha: str,
) -> TitleValidation:
    """
    Validate a pull request's title, and tell GitHub about it.

    The head commit `sha` gets a success or failure status.  An invalid title
    also gets a comment on the pull request explaining what to fix, unless
    the same explanation is already there.
    """
    item = ItemId.from_parts(owner, repo, number)
    sentry_extra_context({"pr": str(item), "title": title})
    logger.info(f"Validating title of {item}: {title!r}")

    result = validate_title(title, config)
    if result.valid:
        host.create_status(
            owner, repo, sha, "success",
            description="PR title follows conventional commit format",
            context=STATUS_CONTEXT,
        )
    else:
        logger.info(f"Title of {item} is invalid: {result.errors}")
        host.create_status(
            owner, repo, sha, "failure",
            description="PR title does not follow conventional commit format",
            context=STATUS_CONTEXT,
        )
        comment = pr_title_invalid_comment(
            title=title,
            errors=result.errors,
            types=list(config.types),
            scopes=list(config.scopes) if config.scopes else None,
        )
        already_said = any(
            c["body"] == comment
            for c in host.get_comments(owner, repo, number)
            if is_comment_kind(BotComment.PR_TITLE_INVALID, c.get("body") or "")
        )
        if already_said:
            logger.info(f"{item} already has this title comment, not posting it again")
        else:
            host.create_comment(owner, repo, number, comment)
    return result
