"""Settings for how the bot should behave."""

import os

GITHUB_PERSONAL_TOKEN = os.environ.get("GITHUB_PERSONAL_TOKEN", None)

# The REST API root. GitHub Enterprise installations have their own.
GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com")

# Where raw file contents are served from.
GITHUB_RAW_URL = os.environ.get("GITHUB_RAW_URL", "https://raw.githubusercontent.com")

# A local YAML file to use instead of the repository's own config file.
REPO_HYGIENE_CONFIG = os.environ.get("REPO_HYGIENE_CONFIG", None)

# The path of the config file inside a repository.
REPO_HYGIENE_CONFIG_PATH = os.environ.get("REPO_HYGIENE_CONFIG_PATH", ".github/repo-hygiene.yml")
