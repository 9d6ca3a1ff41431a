"""Types specific to repo_hygiene."""

from __future__ import annotations

import dataclasses
from typing import Dict

# An issue or pull request as described by a JSON object.
IssueDict = Dict

# A changed file in a pull request, as described by a JSON object.
PrFileDict = Dict

# A repository label as described by a JSON object.
LabelDict = Dict


@dataclasses.dataclass(frozen=True)
class ItemId:
    """An id of an issue or pull request, with a repo full_name and a number."""
    full_name: str
    number: int

    @classmethod
    def from_parts(cls, owner: str, repo: str, number: int) -> ItemId:
        return cls(f"{owner}/{repo}", number)

    def __str__(self):
        return f"{self.full_name}#{self.number}"

    @property
    def owner(self):
        owner, _, _ = self.full_name.partition("/")
        return owner

    @property
    def repo(self):
        _, _, repo = self.full_name.partition("/")
        return repo


@dataclasses.dataclass(frozen=True)
class ContributorSignals:
    """What we know about the author of an item."""
    is_first_time_contributor: bool = False
    is_maintainer: bool = False
