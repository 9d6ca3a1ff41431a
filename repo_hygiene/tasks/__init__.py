"""
The work the bot does on a repository.
"""

import logging

from repo_hygiene import log_level

logger = logging.getLogger(__name__)
logger.setLevel(log_level)
