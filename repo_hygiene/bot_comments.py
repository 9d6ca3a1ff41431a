"""
The bot makes comments on issues and pull requests. This is stuff needed to do it well.
"""

from enum import Enum, auto
from typing import List, Optional

import jinja2

_jinja_env = jinja2.Environment(
    loader=jinja2.PackageLoader("repo_hygiene", "templates"),
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


class BotComment(Enum):
    """
    Comments the bot can leave.
    """
    PR_TITLE_INVALID = auto()


BOT_COMMENT_INDICATORS = {
    BotComment.PR_TITLE_INVALID: [
        "<!-- comment:pr_title_invalid -->",
    ],
}


def is_comment_kind(kind: BotComment, text: str) -> bool:
    """
    Is this `text` a comment of this `kind`?
    """
    return any(snip in text for snip in BOT_COMMENT_INDICATORS[kind])


def render_template(template_name: str, **context) -> str:
    return _jinja_env.get_template(template_name).render(**context)


def pr_title_invalid_comment(
    title: str,
    errors: List[str],
    types: List[str],
    scopes: Optional[List[str]],
) -> str:
    """
    Explain to the author what is wrong with their pull request title.
    """
    return render_template(
        "pr_title_invalid.md.j2",
        title=title,
        errors=errors,
        types=types,
        scopes=scopes,
    )
