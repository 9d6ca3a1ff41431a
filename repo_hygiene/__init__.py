import logging
import os
import sys

import sentry_sdk

__version__ = "0.1.0"

log_level = os.environ.get('LOGLEVEL', 'INFO').upper()
logger = logging.getLogger(__name__)
handler = logging.StreamHandler(sys.stderr)
handler.setLevel(log_level)
logger.addHandler(handler)
logger.setLevel(log_level)

# urllib3 is chatty on debug-level, quiet it.
logging.getLogger("urllib3").setLevel("WARN")


def init_sentry():
    """
    Turn on Sentry error reporting if a DSN is configured.

    Returns True if Sentry was initialized.
    """
    if os.environ.get("SENTRY_DSN", ""):
        sentry_sdk.init(release=f"repo-hygiene@{__version__}")
        return True
    return False
