"""
Deciding which labels an issue or pull request should get, and adding them.

Labels come from four families of rules, evaluated in this order:

1. content rules: regexes matched against the title and body,
2. file rules: regexes matched against the paths a pull request changes,
3. the size rule: one label for how many lines a pull request changes,
4. contributor rules: labels for first-time contributors and maintainers.

Each family is a candidate producer: it looks at the item and the config and
returns (label, priority) candidates.  The candidates are then reduced once:
highest priority wins, ties go to whichever was produced first, and labels
already on the item are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from glom import glom

from repo_hygiene.config import (
    AutoLabelingConfig,
    ClassificationRule,
    LabelConfig,
    SizeLabels,
    SizeThresholds,
)
from repo_hygiene.host import GitHubHost
from repo_hygiene.matching import any_pattern_matches, compile_pattern
from repo_hygiene.tasks import logger
from repo_hygiene.types import ContributorSignals, IssueDict, ItemId, PrFileDict
from repo_hygiene.utils import sentry_extra_context


@dataclass(frozen=True)
class LabelCandidate:
    """A label some rule wants, and how much it wants it."""
    label: str
    priority: int = 1


@dataclass
class ItemSnapshot:
    """
    Everything one classification call knows about the item.

    `current_labels` are the labels as fetched at the start of the call.
    They are never refreshed, so every rule sees the same labels no matter
    what other rules decide.

    Changed files and contributor signals are fetched from the host the first
    time they are needed, and then remembered for the rest of the call.
    """
    host: GitHubHost
    item: ItemId
    current_labels: FrozenSet[str]
    content: str
    title: Optional[str] = None
    is_pr: bool = False
    author: Optional[str] = None

    # The contributor signals looked up during this call, by item.
    signal_table: Dict[ItemId, ContributorSignals] = field(default_factory=dict)
    _files: Optional[List[PrFileDict]] = field(default=None, init=False, repr=False)

    def changed_files(self) -> List[PrFileDict]:
        if self._files is None:
            self._files = self.host.get_pr_files(self.item.owner, self.item.repo, self.item.number)
        return self._files

    def contributor_signals(self) -> ContributorSignals:
        signals = self.signal_table.get(self.item)
        if signals is None:
            signals = self.host.get_user_info(
                self.item.owner, self.item.repo, self.item.number, author=self.author,
            )
            self.signal_table[self.item] = signals
        return signals


CandidateProducer = Callable[[ItemSnapshot, AutoLabelingConfig], List[LabelCandidate]]


def rule_conditions_allow(rule: ClassificationRule, snapshot: ItemSnapshot) -> bool:
    """
    Do the rule's conditions let it apply to this item at all?
    """
    conditions = rule.conditions
    if conditions is None:
        return True
    if conditions.exclude_labels & snapshot.current_labels:
        return False
    if conditions.needs_contributor_signals:
        signals = snapshot.contributor_signals()
        if conditions.require_first_time_contributor and not signals.is_first_time_contributor:
            return False
        if conditions.require_maintainer and not signals.is_maintainer:
            return False
    return True


def content_rule_candidates(snapshot: ItemSnapshot, auto: AutoLabelingConfig) -> List[LabelCandidate]:
    """
    Candidates from rules matching the item's body or title.
    """
    candidates = []
    for rule in auto.rules:
        # Compile first: a bad pattern is an error even if the rule is skipped.
        regex = compile_pattern(rule.pattern)
        if not rule_conditions_allow(rule, snapshot):
            continue

        matched = False
        if rule.scope in ("body", "both"):
            matched = regex.search(snapshot.content) is not None
        if not matched and snapshot.title and rule.scope in ("title", "both"):
            matched = regex.search(snapshot.title) is not None

        if matched:
            candidates.extend(LabelCandidate(label, rule.priority) for label in rule.labels)
    return candidates


def file_rule_candidates(snapshot: ItemSnapshot, auto: AutoLabelingConfig) -> List[LabelCandidate]:
    """
    Candidates from rules matching the paths a pull request changes.
    """
    if not snapshot.is_pr or not auto.file_rules:
        return []
    paths = [f["filename"] for f in snapshot.changed_files()]
    candidates = []
    for rule in auto.file_rules:
        if any_pattern_matches(rule.file_patterns, paths):
            candidates.extend(LabelCandidate(label) for label in rule.labels)
    return candidates


def size_label(total_changes: int, thresholds: SizeThresholds, labels: SizeLabels) -> str:
    """
    Choose the size label for a number of changed lines.

    Each threshold is the inclusive upper bound of its tier.  The thresholds
    are compared in order as given, even if they aren't increasing.
    """
    if total_changes <= thresholds.small:
        return labels.small
    elif total_changes <= thresholds.medium:
        return labels.medium
    elif total_changes <= thresholds.large:
        return labels.large
    else:
        return labels.extra_large


def size_candidates(snapshot: ItemSnapshot, auto: AutoLabelingConfig) -> List[LabelCandidate]:
    """
    The one size label for a pull request.
    """
    size_based = auto.size_based
    if not snapshot.is_pr or not size_based.enabled:
        return []
    total = sum(f.get("additions", 0) + f.get("deletions", 0) for f in snapshot.changed_files())
    return [LabelCandidate(size_label(total, size_based.thresholds, size_based.labels))]


def contributor_candidates(snapshot: ItemSnapshot, auto: AutoLabelingConfig) -> List[LabelCandidate]:
    """
    Labels for who the author is.  An author can get both.
    """
    contributor_based = auto.contributor_based
    if not contributor_based.enabled:
        return []
    signals = snapshot.contributor_signals()
    candidates = []
    if signals.is_first_time_contributor:
        candidates.append(LabelCandidate(contributor_based.labels.first_time_contributor))
    if signals.is_maintainer:
        candidates.append(LabelCandidate(contributor_based.labels.maintainer))
    return candidates


CANDIDATE_PRODUCERS: List[CandidateProducer] = [
    content_rule_candidates,
    file_rule_candidates,
    size_candidates,
    contributor_candidates,
]


def resolve_candidates(candidates: Iterable[LabelCandidate]) -> List[str]:
    """
    Reduce candidates to a list of distinct labels, highest priority first.

    Equal priorities keep the order they were produced in.
    """
    ordered = sorted(candidates, key=lambda c: -c.priority)
    return list(dict.fromkeys(c.label for c in ordered))


def classify_item(
    host: GitHubHost,
    config: LabelConfig,
    owner: str,
    repo: str,
    number: int,
    content: str,
    title: Optional[str] = None,
    is_pr: bool = False,
    issue: Optional[IssueDict] = None,
) -> List[str]:
    """
    Label an issue or pull request according to the auto-labeling rules.

    Only labels the item doesn't already have are added, in one request.
    `issue` is the item as GitHub describes it, if the caller has already
    fetched it.

    Returns the labels that were added, which can be empty.  Errors from the
    host or from a bad pattern are raised, and then nothing is added.
    """
    item = ItemId.from_parts(owner, repo, number)
    logger.info(f"Auto-labeling {item}")
    sentry_extra_context({"item": str(item)})

    if issue is None:
        issue = host.get_issue(owner, repo, number)
    snapshot = ItemSnapshot(
        host=host,
        item=item,
        current_labels=frozenset(lbl["name"] for lbl in issue.get("labels", [])),
        content=content or "",
        title=title,
        is_pr=is_pr,
        author=glom(issue, "user.login", default=None),
    )

    candidates: List[LabelCandidate] = []
    for producer in CANDIDATE_PRODUCERS:
        candidates.extend(producer(snapshot, config.auto_labeling))

    labels_to_add = [
        label for label in resolve_candidates(candidates)
        if label not in snapshot.current_labels
    ]
    if labels_to_add:
        host.add_labels(owner, repo, number, labels_to_add)
        logger.info(f"Added labels {', '.join(labels_to_add)} to {item}")
    else:
        logger.info(f"No new labels for {item}")
    return labels_to_add
