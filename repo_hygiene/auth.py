"""
Create authenticated sessions for access to GitHub.
"""

import requests
from urlobject import URLObject

from repo_hygiene import settings


class BaseUrlSession(requests.Session):
    """
    A requests Session class that applies a base URL to the requested URL.

    Relative URLs are resolved under the base URL's path, even with a
    leading slash, so that "/repos/x/y" works for an API that isn't at the
    root of its host.
    """
    def __init__(self, base_url):
        super().__init__()
        self.base_url = URLObject(base_url)

    def request(self, method, url, data=None, headers=None, **kwargs):
        return super().request(
            method=method,
            url=self.base_url.relative(str(url).lstrip("/")),
            data=data,
            headers=headers,
            **kwargs
        )


def get_github_session():
    """
    Get the GitHub session to use, in an easily test-patchable way.
    """
    session = BaseUrlSession(base_url=settings.GITHUB_API_URL.rstrip("/") + "/")
    session.headers["Accept"] = "application/vnd.github+json"
    if settings.GITHUB_PERSONAL_TOKEN:
        session.headers["Authorization"] = f"token {settings.GITHUB_PERSONAL_TOKEN}"
    session.trust_env = False   # prevent reading the local .netrc
    return session
