"""
Operations on GitHub repository labels.
"""

from typing import Any, Dict, List

from repo_hygiene.config import LabelConfig
from repo_hygiene.host import GitHubHost
from repo_hygiene.tasks import logger

# Colors for new labels, by category.
CATEGORY_COLORS = {
    "type": "fbca04",
    "priority": "e11d21",
    "status": "0e8a16",
}
DEFAULT_COLOR = "5319e7"


def get_repo_labels(host: GitHubHost, owner: str, repo: str) -> Dict[str, Dict[str, Any]]:
    """Get a dict mapping label names to full label info."""
    return {lbl["name"]: lbl for lbl in host.get_repo_labels(owner, repo)}


def category_label_name(category: str, label: str) -> str:
    """
    The full name of a label in a category.

    "type" labels are used bare, and so are labels that already start with
    their category, like "size: small".  Others get a "category: " prefix.
    """
    if category == "type" or label.startswith(f"{category}:"):
        return label
    return f"{category}: {label}"


def label_color(category: str) -> str:
    return CATEGORY_COLORS.get(category, DEFAULT_COLOR)


def synchronize_labels(host: GitHubHost, config: LabelConfig, owner: str, repo: str) -> List[str]:
    """
    Make sure the repo has all the labels from the configured categories.

    Missing labels are created.  Existing labels are left as they are, even if
    their color differs, and labels we don't know about are never deleted.

    Returns the names of the labels created.
    """
    logger.info(f"Syncing labels for {owner}/{repo}")
    existing = get_repo_labels(host, owner, repo)
    created = []
    for category, labels in config.categories.items():
        for label in labels:
            name = category_label_name(category, label)
            if name in existing or name in created:
                continue
            host.create_label(owner, repo, name, label_color(category), description=f"Label for {name}")
            created.append(name)
    logger.info(f"Completed syncing labels for {owner}/{repo}, created {len(created)}")
    return created
