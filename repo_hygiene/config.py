"""
Configuration of the bot's behavior.

The configuration is YAML.  The built-in defaults are in default_config.yaml,
and a repository (or a local file) can override any part of them.  The merged
data is turned into the frozen dataclasses here, which are what the rest of
the code uses.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

import yaml
from glom import glom

from repo_hygiene import settings
from repo_hygiene.auth import get_github_session
from repo_hygiene.utils import log_check_response, memoize_timed

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).with_name("default_config.yaml")

SCOPES = {"title", "body", "both"}


class ConfigurationError(Exception):
    """Raised when the configuration can't be used."""


@dataclass(frozen=True)
class RuleConditions:
    """Extra conditions on whether a content rule applies at all."""
    # The rule is skipped if the item already has any of these.
    exclude_labels: FrozenSet[str] = frozenset()
    require_first_time_contributor: bool = False
    require_maintainer: bool = False

    @property
    def needs_contributor_signals(self) -> bool:
        return self.require_first_time_contributor or self.require_maintainer


@dataclass(frozen=True)
class ClassificationRule:
    """A regex to look for in an item's title or body, and the labels it implies."""
    pattern: str
    labels: Tuple[str, ...] = ()
    # "title", "body", or "both".
    scope: str = "both"
    priority: int = 1
    conditions: Optional[RuleConditions] = None


@dataclass(frozen=True)
class FileRule:
    """Labels for a pull request that changes a file matching any of the patterns."""
    file_patterns: Tuple[str, ...]
    labels: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SizeThresholds:
    """Upper bounds (inclusive) on changed lines for each size tier."""
    small: int = 10
    medium: int = 100
    large: int = 500


@dataclass(frozen=True)
class SizeLabels:
    small: str = "size: small"
    medium: str = "size: medium"
    large: str = "size: large"
    extra_large: str = "size: extra-large"


@dataclass(frozen=True)
class SizeBasedConfig:
    enabled: bool = False
    thresholds: SizeThresholds = field(default_factory=SizeThresholds)
    labels: SizeLabels = field(default_factory=SizeLabels)


@dataclass(frozen=True)
class ContributorLabels:
    first_time_contributor: str = "first-time-contributor"
    maintainer: str = "maintainer"


@dataclass(frozen=True)
class ContributorBasedConfig:
    enabled: bool = False
    labels: ContributorLabels = field(default_factory=ContributorLabels)


@dataclass(frozen=True)
class AutoLabelingConfig:
    rules: Tuple[ClassificationRule, ...] = ()
    file_rules: Tuple[FileRule, ...] = ()
    size_based: SizeBasedConfig = field(default_factory=SizeBasedConfig)
    contributor_based: ContributorBasedConfig = field(default_factory=ContributorBasedConfig)


@dataclass(frozen=True)
class LabelConfig:
    # Category name to the labels in that category, for synchronizing.
    categories: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    auto_labeling: AutoLabelingConfig = field(default_factory=AutoLabelingConfig)


@dataclass(frozen=True)
class StaleConfig:
    days_before_stale: int = 60
    days_before_close: int = 7
    exempt_labels: FrozenSet[str] = frozenset()
    stale_label: str = "stale"
    # Comments to post when marking and closing, if any.
    stale_message: Optional[str] = None
    close_message: Optional[str] = None


@dataclass(frozen=True)
class PrTitleConfig:
    types: Tuple[str, ...] = ()
    # None means any scope is allowed.
    scopes: Optional[Tuple[str, ...]] = None
    patterns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BotConfig:
    stale: StaleConfig = field(default_factory=StaleConfig)
    labels: LabelConfig = field(default_factory=LabelConfig)
    pr_title: PrTitleConfig = field(default_factory=PrTitleConfig)


# Checking and converting individual values.

def _require_int(value: Any, where: str, minimum: Optional[int] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{where} must be an integer, not {value!r}")
    if minimum is not None and value < minimum:
        raise ConfigurationError(f"{where} must be at least {minimum}, not {value!r}")
    return value


def _require_bool(value: Any, where: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"{where} must be true or false, not {value!r}")
    return value


def _require_str(value: Any, where: str) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"{where} must be a non-empty string, not {value!r}")
    return value


def _require_str_list(value: Any, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{where} must be a list of strings, not {value!r}")
    return tuple(value)


def _optional_message(value: Any, where: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{where} must be a string, not {value!r}")
    return value


# Parsing each section.

def parse_stale_config(data: Dict) -> StaleConfig:
    return StaleConfig(
        days_before_stale=_require_int(data.get("daysBeforeStale"), "stale.daysBeforeStale", minimum=1),
        days_before_close=_require_int(data.get("daysBeforeClose"), "stale.daysBeforeClose", minimum=1),
        exempt_labels=frozenset(_require_str_list(data.get("exemptLabels"), "stale.exemptLabels")),
        stale_label=_require_str(data.get("staleLabel"), "stale.staleLabel"),
        stale_message=_optional_message(data.get("staleMessage"), "stale.staleMessage"),
        close_message=_optional_message(data.get("closeMessage"), "stale.closeMessage"),
    )


def _parse_conditions(data: Optional[Dict], where: str) -> Optional[RuleConditions]:
    if not data:
        return None
    # Accept both the flat keys and the nested "userTypes" form.
    first_time = data.get(
        "requireFirstTimeContributor",
        glom(data, "userTypes.firstTimeContributor", default=False),
    )
    maintainer = data.get(
        "requireMaintainer",
        glom(data, "userTypes.maintainer", default=False),
    )
    return RuleConditions(
        exclude_labels=frozenset(_require_str_list(data.get("excludeLabels"), f"{where}.excludeLabels")),
        require_first_time_contributor=_require_bool(first_time, f"{where}.requireFirstTimeContributor"),
        require_maintainer=_require_bool(maintainer, f"{where}.requireMaintainer"),
    )


def parse_rule(data: Dict, where: str = "rule") -> ClassificationRule:
    """Make a ClassificationRule from its configuration mapping."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"{where} must be a mapping, not {data!r}")
    scope = data.get("scope", "both")
    if scope not in SCOPES:
        raise ConfigurationError(f"{where}.scope must be one of {sorted(SCOPES)}, not {scope!r}")
    return ClassificationRule(
        pattern=_require_str(data.get("pattern"), f"{where}.pattern"),
        labels=_require_str_list(data.get("labels"), f"{where}.labels"),
        scope=scope,
        priority=_require_int(data.get("priority", 1), f"{where}.priority", minimum=1),
        conditions=_parse_conditions(data.get("conditions"), f"{where}.conditions"),
    )


def parse_file_rule(data: Dict, where: str = "file rule") -> FileRule:
    if not isinstance(data, dict):
        raise ConfigurationError(f"{where} must be a mapping, not {data!r}")
    return FileRule(
        file_patterns=_require_str_list(data.get("filePatterns"), f"{where}.filePatterns"),
        labels=_require_str_list(data.get("labels"), f"{where}.labels"),
    )


def _parse_size_based(data: Dict) -> SizeBasedConfig:
    where = "labels.autoLabeling.sizeBased"
    if not data:
        return SizeBasedConfig(enabled=False)
    thresholds = SizeThresholds(**{
        tier: _require_int(glom(data, f"thresholds.{tier}", default=None), f"{where}.thresholds.{tier}")
        for tier in ["small", "medium", "large"]
    })
    if not thresholds.small < thresholds.medium < thresholds.large:
        logger.warning(f"Size thresholds aren't increasing: {thresholds}")
    labels = SizeLabels(
        small=_require_str(glom(data, "labels.small", default=None), f"{where}.labels.small"),
        medium=_require_str(glom(data, "labels.medium", default=None), f"{where}.labels.medium"),
        large=_require_str(glom(data, "labels.large", default=None), f"{where}.labels.large"),
        extra_large=_require_str(glom(data, "labels.extraLarge", default=None), f"{where}.labels.extraLarge"),
    )
    return SizeBasedConfig(
        enabled=_require_bool(data.get("enabled", False), f"{where}.enabled"),
        thresholds=thresholds,
        labels=labels,
    )


def _parse_contributor_based(data: Dict) -> ContributorBasedConfig:
    where = "labels.autoLabeling.contributorBased"
    if not data:
        return ContributorBasedConfig(enabled=False)
    return ContributorBasedConfig(
        enabled=_require_bool(data.get("enabled", False), f"{where}.enabled"),
        labels=ContributorLabels(
            first_time_contributor=_require_str(
                glom(data, "labels.firstTimeContributor", default=None), f"{where}.labels.firstTimeContributor",
            ),
            maintainer=_require_str(glom(data, "labels.maintainer", default=None), f"{where}.labels.maintainer"),
        ),
    )


def parse_label_config(data: Dict) -> LabelConfig:
    categories = {}
    for name, labels in (data.get("categories") or {}).items():
        categories[name] = _require_str_list(labels, f"labels.categories.{name}")

    auto = data.get("autoLabeling") or {}
    rules = tuple(
        parse_rule(rule, f"labels.autoLabeling.rules[{i}]")
        for i, rule in enumerate(auto.get("rules") or [])
    )
    file_rules = tuple(
        parse_file_rule(rule, f"labels.autoLabeling.fileBased.rules[{i}]")
        for i, rule in enumerate(glom(auto, "fileBased.rules", default=None) or [])
    )
    return LabelConfig(
        categories=categories,
        auto_labeling=AutoLabelingConfig(
            rules=rules,
            file_rules=file_rules,
            size_based=_parse_size_based(auto.get("sizeBased")),
            contributor_based=_parse_contributor_based(auto.get("contributorBased")),
        ),
    )


def parse_pr_title_config(data: Dict) -> PrTitleConfig:
    scopes = data.get("scopes")
    return PrTitleConfig(
        types=_require_str_list(data.get("types"), "prTitle.types"),
        scopes=None if scopes is None else _require_str_list(scopes, "prTitle.scopes"),
        patterns=_require_str_list(data.get("patterns"), "prTitle.patterns"),
    )


def merge_config_data(base: Dict, override: Dict) -> Dict:
    """
    Merge `override` over `base`, returning a new dict.

    Mappings are merged key by key; anything else in `override` replaces
    what's in `base`.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config_data(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def default_config_data() -> Dict:
    return yaml.safe_load(DEFAULT_CONFIG_FILE.read_text())


def config_from_data(data: Optional[Dict]) -> BotConfig:
    """
    Make a BotConfig from configuration data, applied over the defaults.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration must be a mapping, not {type(data).__name__}")
    merged = merge_config_data(default_config_data(), data)
    return BotConfig(
        stale=parse_stale_config(merged.get("stale") or {}),
        labels=parse_label_config(merged.get("labels") or {}),
        pr_title=parse_pr_title_config(merged.get("prTitle") or {}),
    )


def config_from_yaml(text: str, source: str = "configuration") -> BotConfig:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Couldn't parse {source}: {exc}") from exc
    return config_from_data(data)


def load_config(path: Optional[str] = None) -> BotConfig:
    """
    Load the configuration from a local YAML file, or just the defaults.
    """
    if path is None:
        logger.debug("Using the default configuration")
        return config_from_data({})
    logger.info(f"Loading configuration from {path}")
    try:
        text = Path(path).read_text()
    except OSError as exc:
        raise ConfigurationError(f"Couldn't read configuration file {path}: {exc}") from exc
    return config_from_yaml(text, source=path)


def _github_file_url(repo_fullname: str, file_path: str) -> str:
    """Get the GitHub url to retrieve the text of a file."""
    # HEAD is used here to get the tip of the repo, regardless of whether it
    # uses master or main.
    return f"{settings.GITHUB_RAW_URL}/{repo_fullname}/HEAD/{file_path}"


def read_github_file(repo_fullname: str, file_path: str, not_there: Optional[str] = None) -> str:
    """
    Read a GitHub file from the default branch of a repo.

    `not_there` is for handling missing files.  All other errors trying to
    access the file are raised as exceptions.

    Arguments:
        `repo_fullname`: the owner and repo to access: ``"octo-org/octo-repo"``.
        `file_path`: the path to the file within the repo.
        `not_there`: if provided, text to return if the file (or repo) doesn't exist.

    Returns:
        The text of the file, or `not_there` if provided.
    """
    url = _github_file_url(repo_fullname, file_path)
    logger.debug(f"Grabbing config file from: {url}")
    resp = get_github_session().get(url)
    if resp.status_code == 404 and not_there is not None:
        return not_there
    log_check_response(resp, "read_github_file", f"{repo_fullname}:{file_path}")
    return resp.text


# Every command reads the config, cache it for a while.
@memoize_timed(minutes=15)
def _read_repo_config_text(repo_fullname: str) -> str:
    return read_github_file(repo_fullname, settings.REPO_HYGIENE_CONFIG_PATH, not_there="")


def get_repo_config(owner: str, repo: str) -> BotConfig:
    """
    Get the configuration for a repo: its own config file over the defaults.
    """
    full_name = f"{owner}/{repo}"
    text = _read_repo_config_text(full_name)
    if not text.strip():
        logger.debug(f"No config file in {full_name}, using defaults")
        return config_from_data({})
    return config_from_yaml(text, source=f"{full_name}:{settings.REPO_HYGIENE_CONFIG_PATH}")
