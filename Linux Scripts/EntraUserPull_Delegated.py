# EntraUserPull_Delegated.py
import os
from urllib.parse import quote, urlencode

from graph_auth import GRAPH, AuthError, acquire_delegated_token, token_cache
from graph_export import odata_filter, write_csv
from graph_paging import CLIENT, GraphPagingError, paged_get

SCOPES = ["User.Read.All"]  # or ["User.ReadBasic.All"]
ONLY_LICENSED = os.getenv("ONLY_LICENSED") == "1"  # optional
OUTPUT_FILE = os.getenv("OUTPUT_FILE", "entra_users.csv")
FIELDS = ["id", "displayName", "userPrincipalName", "mail", "jobTitle", "department", "accountEnabled", "userType"]


def build_query(only_licensed: bool):
    """Return (url, extra_headers) for the user listing."""
    params = {
        "$select": ",".join(FIELDS),
        "$top": "999",
    }
    extra = {}
    licensed = None
    if only_licensed:
        # assignedLicenses/$count is an advanced query
        extra["ConsistencyLevel"] = "eventual"
        params["$count"] = "true"
        licensed = "assignedLicenses/$count ne 0"
    # Exclude shared/room/equipment (disabled) and guests
    params["$filter"] = odata_filter("accountEnabled eq true", "userType eq 'Member'", licensed)
    query = urlencode(params, safe="$,/'", quote_via=quote)
    return f"{GRAPH}/users?{query}", extra


def main():
    tenant_id, client_id = os.getenv("TENANT_ID"), os.getenv("CLIENT_ID")
    if not all([tenant_id, client_id]):
        raise SystemExit("Missing required env vars: TENANT_ID, CLIENT_ID")

    try:
        auth = acquire_delegated_token(tenant_id, client_id, SCOPES, cache=token_cache())
    except AuthError as e:
        raise SystemExit(str(e))

    url, extra = build_query(ONLY_LICENSED)
    # nextLink already contains the encoded params, so the session only adds headers
    with auth.session(extra) as session:
        try:
            all_users = list(paged_get(url, CLIENT, client=session, timeout=30))
        except GraphPagingError as e:
            raise SystemExit(f"User pull failed: {e}")

    count = write_csv(OUTPUT_FILE, all_users, FIELDS)
    print(f"Exported {count} active member users to {OUTPUT_FILE}")


if __name__ == "__main__":
    main()
