"""Paged GET helper for Microsoft Graph style collections.

Graph list endpoints return ``{"value": [...], "@odata.nextLink": "..."}``.
``paged_get`` follows the next link until it is gone and yields the items one
by one, so callers can stream straight into a filter or a CSV writer.
"""

from typing import Any, Dict, Iterator, Mapping, Optional

import requests

GRAPH_ITEMS_KEY = "value"
GRAPH_NEXT_KEY = "@odata.nextLink"

# Dispatch modes
CLIENT = "client"  # pre-authenticated client (requests.Session with auth header)
RAW = "raw"        # plain requests.get with an explicit header mapping


# ── Errors ─────────────────────────────────────────────────────────────
class GraphPagingError(Exception):
    def __init__(self, message: str, url: Optional[str] = None, detail: Any = None):
        super().__init__(message)
        self.url = url
        self.detail = detail


class ConfigurationError(GraphPagingError):
    """A dispatch prerequisite is missing (headers, client, URL)."""


class RequestError(GraphPagingError):
    """Transport failure, non-2xx status or a body that is not JSON."""

    def __init__(self, message: str, url: Optional[str] = None, detail: Any = None,
                 status_code: Optional[int] = None):
        super().__init__(message, url=url, detail=detail)
        self.status_code = status_code


class MalformedResponseError(RequestError):
    """The response body is not a collection envelope."""


# ── Fetcher ────────────────────────────────────────────────────────────
def paged_get(
    url: str,
    mode: str = RAW,
    *,
    headers: Optional[Mapping[str, str]] = None,
    client: Any = None,
    timeout: Optional[float] = None,
    items_key: str = GRAPH_ITEMS_KEY,
    next_key: str = GRAPH_NEXT_KEY,
) -> Iterator[Dict[str, Any]]:
    """Yield every item of a paginated collection.

    Prerequisites are checked here, before the generator is created, so a
    bad call fails without touching the network. Each continuation link is
    requested verbatim: it already carries $select/$filter/$skiptoken.
    """
    if not url:
        raise ConfigurationError("An initial URL is required")
    if mode == RAW:
        if headers is None:
            raise ConfigurationError("Raw dispatch needs a header mapping with Authorization", url=url)
    elif mode == CLIENT:
        if client is None:
            raise ConfigurationError("Client dispatch needs an authenticated client", url=url)
    else:
        raise ConfigurationError(f"Unknown dispatch mode: {mode!r}", url=url)

    if mode == RAW:
        # Copy once; the caller's mapping is never touched
        raw_headers = dict(headers)

        def get(page_url):
            return requests.get(page_url, headers=raw_headers, timeout=timeout)
    else:
        def get(page_url):
            return client.get(page_url, timeout=timeout)

    return _pages(url, get, items_key, next_key)


def _pages(url, get, items_key, next_key):
    while url:
        data = _fetch_page(url, get)
        if items_key not in data:
            raise MalformedResponseError(
                f"Response from {url} has no '{items_key}' entry", url=url, detail=sorted(data)
            )
        items = data[items_key]
        if not isinstance(items, list):
            raise MalformedResponseError(
                f"'{items_key}' in response from {url} is not a list", url=url, detail=type(items).__name__
            )
        yield from items
        # Empty pages can still carry a next link; only its absence ends the fetch
        url = data.get(next_key)


def _fetch_page(url, get) -> Dict[str, Any]:
    try:
        resp = get(url)
        resp.raise_for_status()
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise RequestError(f"GET {url} failed: {e}", url=url, detail=str(e), status_code=status) from e
    except requests.RequestException as e:
        raise RequestError(f"GET {url} failed: {e}", url=url, detail=str(e)) from e
    # raise_for_status lets 1xx/3xx through
    if not 200 <= resp.status_code < 300:
        raise RequestError(
            f"GET {url} returned status {resp.status_code}", url=url,
            detail=f"unexpected status {resp.status_code}", status_code=resp.status_code,
        )

    try:
        data = resp.json()
    except ValueError as e:
        raise RequestError(
            f"GET {url} returned a non-JSON body", url=url, detail=str(e), status_code=resp.status_code
        ) from e
    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"GET {url} returned {type(data).__name__}, expected an object",
            url=url, detail=data, status_code=resp.status_code,
        )
    return data
