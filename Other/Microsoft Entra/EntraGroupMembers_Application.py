# ╔══════════════════════════════════════════════════════════════════════╗
# ║  SCRIPT                                                              ║
# ║  Name     : EntraGroupMembers_Application.py                         ║
# ║  Version  : 1.1                                                      ║
# ║  Date     : 2025-09-02                                               ║
# ║  Author   : Jonathan Neerup-Andersen  ·  jna@ntg.com                 ║
# ║  License  : Free for non-commercial use (no warranty)                ║
# ║  Notes    : Pull only active users from one or more Entra groups     ║
# ╚══════════════════════════════════════════════════════════════════════╝

import os

from graph_auth import GRAPH, AuthError, acquire_app_token, app_settings_from_env
from graph_export import odata_escape, safe_filename, write_csv
from graph_paging import RAW, GraphPagingError, paged_get

# ── Configuration ──────────────────────────────────────────────────────
# Set these env vars: TENANT_ID, CLIENT_ID, CLIENT_SECRET
GROUP_NAME = os.getenv("GROUP_NAME", "DK-TEST-GROUP-01")  # Single entry or comma separated list
INCLUDE_TRANSITIVE = os.getenv("INCLUDE_TRANSITIVE", "1") == "1"  # include nested group users
FIELDS = ["id", "displayName", "userPrincipalName", "mail", "jobTitle", "department", "accountEnabled"]


class GroupLookupError(Exception):
    pass


# ── Helpers ────────────────────────────────────────────────────────────
def resolve_group(name: str, headers) -> str:
    """Return the id of the group whose displayName is exactly ``name``."""
    url = (
        f"{GRAPH}/groups?$select=id,displayName"
        f"&$filter=displayName eq '{odata_escape(name)}'&$top=999"
    )
    matches = list(paged_get(url, RAW, headers=headers, timeout=30))
    if not matches:
        raise GroupLookupError(f"No group found with displayName = '{name}'")
    if len(matches) > 1:
        ids = ", ".join(g["id"] for g in matches)
        raise GroupLookupError(
            f"Multiple groups found with displayName = '{name}'. "
            f"Be explicit. Candidate IDs: {ids}"
        )
    return matches[0]["id"]


def active_members(group_id: str, headers, transitive: bool = True):
    members_path = "transitiveMembers" if transitive else "members"
    # Cast to only users to avoid devices/SPNs/groups
    url = f"{GRAPH}/groups/{group_id}/{members_path}/microsoft.graph.user?$select={','.join(FIELDS)}&$top=999"
    for u in paged_get(url, RAW, headers=headers, timeout=30):
        if u.get("accountEnabled") is True:
            yield u


def export_group(name: str, headers) -> int:
    group_id = resolve_group(name, headers)
    users = list(active_members(group_id, headers, INCLUDE_TRANSITIVE))
    output_file = f"entra_users_{safe_filename(name)}.csv"
    count = write_csv(output_file, users, FIELDS)
    print(f"Group: {name} ({group_id})")
    print(f"Active users exported: {count}")
    print(f"File: {output_file}")
    return count


def main():
    try:
        auth = acquire_app_token(*app_settings_from_env())
    except AuthError as e:
        raise SystemExit(str(e))

    headers = auth.headers()
    names = [n.strip() for n in GROUP_NAME.split(",") if n.strip()]
    failed = []
    for name in names:
        try:
            export_group(name, headers)
        except (GroupLookupError, GraphPagingError, OSError) as e:
            print(f"[warn] {name}: {e}")
            failed.append(name)

    if failed:
        raise SystemExit(f"{len(failed)} of {len(names)} group(s) failed: {', '.join(failed)}")


if __name__ == "__main__":
    main()
