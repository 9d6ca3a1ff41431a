"""
Matching configured regular expressions against text.

Patterns come from trusted configuration and are used as written: no escaping
is done.  They are compiled when first used, so a bad pattern is only noticed
when a rule is evaluated.
"""

import re
from typing import Iterable, Pattern

from repo_hygiene.config import ConfigurationError


def compile_pattern(pattern: str, ignore_case: bool = True) -> Pattern:
    """
    Compile a configured pattern, case-insensitively unless `ignore_case` is False.

    Raises ConfigurationError if `pattern` isn't a valid regex.
    """
    try:
        return re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    except re.error as exc:
        raise ConfigurationError(f"Invalid pattern {pattern!r}: {exc}") from exc


def pattern_matches(pattern: str, text: str) -> bool:
    """
    Does the case-insensitive regex `pattern` match anywhere in `text`?
    """
    return compile_pattern(pattern).search(text) is not None


def any_pattern_matches(patterns: Iterable[str], texts: Iterable[str]) -> bool:
    """
    Does any of `patterns` match any of `texts`?

    All the patterns are compiled before any matching is done.
    """
    regexes = [compile_pattern(p) for p in patterns]
    return any(regex.search(text) for text in texts for regex in regexes)
