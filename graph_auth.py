"""Token acquisition for the Graph scripts.

Two flows, both through MSAL:
- app-only (client credentials), for unattended exports
- delegated (device code) with a persisted, encrypted token cache

Either way the result is an ``AuthContext``: an explicit value passed to the
fetcher, not global state.
"""

import os
import pathlib

import msal
import requests
from msal_extensions import FilePersistence, PersistedTokenCache, build_encrypted_persistence

AUTHORITY_BASE = "https://login.microsoftonline.com"
GRAPH_SCOPE = ["https://graph.microsoft.com/.default"]
GRAPH = "https://graph.microsoft.com/v1.0"
GRAPH_BETA = "https://graph.microsoft.com/beta"


class AuthError(Exception):
    pass


class AuthContext:
    """Bearer token for one run. Read-only once built."""

    __slots__ = ("_token",)

    def __init__(self, access_token: str):
        if not access_token:
            raise AuthError("Empty access token")
        object.__setattr__(self, "_token", access_token)

    def __setattr__(self, name, value):
        raise AttributeError("AuthContext is immutable")

    def __repr__(self):
        return "AuthContext(<redacted>)"

    def headers(self, extra=None) -> dict:
        """Fresh header dict for raw requests."""
        headers = {"Authorization": f"Bearer {self._token}"}
        if extra:
            headers.update(extra)
        return headers

    def session(self, extra=None) -> requests.Session:
        """Authenticated client: every request carries the bearer token."""
        s = requests.Session()
        s.headers.update(self.headers(extra))
        return s


def authority(tenant_id: str) -> str:
    return f"{AUTHORITY_BASE}/{tenant_id}"


def app_settings_from_env():
    """Return (tenant_id, client_id, client_secret) from the environment."""
    names = ("TENANT_ID", "CLIENT_ID", "CLIENT_SECRET")
    values = [os.getenv(n) for n in names]
    missing = [n for n, v in zip(names, values) if not v]
    if missing:
        raise AuthError(f"Missing required env vars: {', '.join(missing)}")
    return tuple(values)


def _check(result) -> AuthContext:
    if not result or "access_token" not in result:
        result = result or {}
        raise AuthError(f"Auth failed: {result.get('error')} - {result.get('error_description')}")
    return AuthContext(result["access_token"])


# ── App-only ───────────────────────────────────────────────────────────
def acquire_app_token(tenant_id: str, client_id: str, client_secret: str, scopes=None) -> AuthContext:
    scopes = scopes or GRAPH_SCOPE
    app = msal.ConfidentialClientApplication(
        client_id=client_id,
        client_credential=client_secret,
        authority=authority(tenant_id),
    )
    result = app.acquire_token_silent(scopes, account=None) or app.acquire_token_for_client(scopes=scopes)
    return _check(result)


# ── Delegated ──────────────────────────────────────────────────────────
def token_cache(app_name: str = "EntraUserPull") -> PersistedTokenCache:
    cache_dir = pathlib.Path(os.getenv("LOCALAPPDATA", pathlib.Path.home())) / app_name
    cache_dir.mkdir(parents=True, exist_ok=True)
    path = str(cache_dir / "msal_cache.bin")
    try:
        persistence = build_encrypted_persistence(path)
    except Exception:
        # No keyring/DPAPI available (headless Linux); plaintext only on request
        if os.getenv("ALLOW_PLAINTEXT_CACHE") == "1":
            persistence = FilePersistence(path)
        else:
            raise
    return PersistedTokenCache(persistence)


def acquire_delegated_token(tenant_id: str, client_id: str, scopes, cache=None, prompt=print) -> AuthContext:
    app = msal.PublicClientApplication(client_id, authority=authority(tenant_id), token_cache=cache)
    acct = next(iter(app.get_accounts()), None)
    result = app.acquire_token_silent(scopes, account=acct) if acct else None
    if not result:
        flow = app.initiate_device_flow(scopes=scopes)
        if "user_code" not in flow:
            raise AuthError(f"Device code start failed: {flow.get('error')} - {flow.get('error_description')}")
        prompt(flow["message"])
        result = app.acquire_token_by_device_flow(flow)
    return _check(result)
