"""Helpers for tests."""

import re


def check_good_markdown(text: str) -> None:
    """
    Make some checks of Markdown text.

    These are meant to catch mistakes in templates or code producing Markdown.

    Returns:
        Nothing.  Will raise an exception with a failure message if something
        is wrong.
    """
    if text.startswith((" ", "\n", "\t")):
        raise ValueError(f"Markdown shouldn't start with whitespace: {text!r}")

    # HTML comments must be on a line by themselves or the Markdown won't
    # render properly.
    if re.search(".<!--", text):
        raise ValueError(f"Markdown shouldn't have an HTML comment in the middle of a line: {text!r}")
    if re.search("-->.", text):
        raise ValueError(f"Markdown shouldn't have an HTML comment with following text: {text!r}")

    # Code fences have to be closed.
    if text.count("```") % 2:
        raise ValueError(f"Markdown has an unclosed code fence: {text!r}")

    # Jinja syntax should never get through to the output.
    if re.search(r"\{\{|\{%", text):
        raise ValueError(f"Markdown has unrendered template syntax: {text!r}")


def issue_json(number=17, labels=(), updated_at="2024-01-01T00:00:00Z", login="someone", **kwargs):
    """Make a minimal issue, as GitHub would describe it."""
    j = {
        "number": number,
        "state": "open",
        "labels": [{"name": lbl} for lbl in labels],
        "updated_at": updated_at,
        "user": {"login": login},
    }
    j.update(kwargs)
    return j
