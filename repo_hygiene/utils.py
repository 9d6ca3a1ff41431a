"""
Generic utilities.
"""

import time
from time import sleep as retry_sleep   # so that we can patch it for tests.
from typing import Iterator, Optional

import cachetools.func
import requests
import sentry_sdk
from urlobject import URLObject

from repo_hygiene import logger


class HostCallFailure(Exception):
    """
    A call to the repository host failed.

    `operation` is the name of the host operation ("add_labels"), and `target`
    is what it was aimed at ("owner/repo#17").
    """
    def __init__(self, operation: str, target: str, detail: str = ""):
        self.operation = operation
        self.target = target
        self.detail = detail
        msg = f"{operation} failed for {target}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


def log_check_response(response, operation: str = "request", target: str = "", raise_for_status=True):
    """
    Logs HTTP request and response at debug level and checks if it succeeded.

    Arguments:
        response (requests.Response)
        operation (str): the host operation being performed, for the error.
        target (str): what the operation is aimed at, for the error.
        raise_for_status (bool): if True, raise HostCallFailure for an
            unsuccessful response.
    """
    msg = "Request: {0.method} {0.url}: {0.body!r}".format(response.request)
    logger.debug(msg)
    msg = "Response: {0.status_code} {0.reason!r} for {0.url}: {0.content!r}".format(response)
    logger.debug(msg)
    if raise_for_status:
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            req = response.request
            raise HostCallFailure(
                operation,
                target or req.url,
                f"HTTP request failed: {req.method} {req.url}. Response body: {response.content!r}",
            ) from exc


def text_summary(text, length=40):
    """
    Make a summary of `text`, at most `length` chars long.

    The middle will be elided if needed.
    """
    if len(text) <= length:
        return text
    else:
        start = (length - 3) // 2
        end = length - 3 - start
        return text[:start] + "..." + text[-end:]


def retry_get(session, url, **kwargs):
    """
    Get a URL, but retry if it returns a 404.

    GitHub has been known to return a 404 for an item that was just created
    or just changed. This will retry with a pause to get the real answer.
    """
    tries = 10
    while True:
        resp = session.get(url, **kwargs)
        if resp.status_code == 404:
            tries -= 1
            if tries == 0:
                break
            retry_sleep(.5)
            continue
        else:
            break
    return resp


def paginated_get(
    url,
    session,
    limit=None,
    per_page=100,
    operation="paginated_get",
    target="",
    **kwargs
) -> Iterator:
    """
    Retrieve all objects from a paginated API.

    Assumes that the pagination is specified in the "link" header, like
    GitHub's v3 API.

    The `limit` describes how many results you'd like returned.  You might get
    more than this, but you won't make more requests to the server once this
    limit has been exceeded.

    """
    url = URLObject(url).set_query_param('per_page', str(per_page))
    limit = limit or 999999999
    returned = 0
    while url:
        try:
            resp = retry_get(session, url, **kwargs)
        except requests.RequestException as exc:
            raise HostCallFailure(operation, target or str(url), str(exc)) from exc
        log_check_response(resp, operation, target)
        for item in resp.json():
            yield item
            returned += 1
        url = None
        if resp.links and returned < limit:
            url = resp.links.get("next", {}).get("url", "")


# A list of all the memoized functions, so that `clear_memoized_values` can
# clear them all.
_memoized_functions = []

def memoize_timed(minutes):
    """Cache the value of a function for `minutes` minutes."""
    def _timed(func):
        # We use time.time as the timer so that freezegun can test it, and in a
        # new function so that freezegun's patching will work.
        def patchable_timer():
            return time.time()
        func = cachetools.func.ttl_cache(ttl=60 * minutes, timer=patchable_timer)(func)
        _memoized_functions.append(func)
        return func
    return _timed

def clear_memoized_values():
    """Clear all the values saved by @memoize_timed, to ensure isolated tests."""
    for func in _memoized_functions:
        func.cache_clear()


def sentry_extra_context(data_dict):
    """Apply the keys and values from data_dict to the Sentry extra context."""
    scope = sentry_sdk.get_current_scope()
    for key, value in data_dict.items():
        scope.set_extra(key, value)


def parse_repo_name(full_name: Optional[str]):
    """
    Split "owner/repo" into ("owner", "repo").

    Raises ValueError if `full_name` isn't of that form.
    """
    owner, slash, repo = (full_name or "").partition("/")
    if not owner or not slash or not repo or "/" in repo:
        raise ValueError(f"Repository must be given as OWNER/REPO, not {full_name!r}")
    return owner, repo
