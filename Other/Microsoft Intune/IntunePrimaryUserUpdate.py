# ╔══════════════════════════════════════════════════════════════════════╗
# ║  SCRIPT                                                              ║
# ║  Name     : IntunePrimaryUserUpdate.py                               ║
# ║  Notes    : Set the primary user of matching Intune devices          ║
# ║             Needs DeviceManagementManagedDevices.ReadWrite.All       ║
# ╚══════════════════════════════════════════════════════════════════════╝

import os
from urllib.parse import quote

import requests

from graph_auth import GRAPH, GRAPH_BETA, AuthError, acquire_app_token, app_settings_from_env
from graph_export import confirm
from graph_paging import CLIENT, GraphPagingError, paged_get

# ── Configuration ──────────────────────────────────────────────────────
DEVICE_NAME_PREFIX = os.getenv("DEVICE_NAME_PREFIX", "")
TARGET_UPN = os.getenv("TARGET_UPN", "")
ASSUME_YES = os.getenv("ASSUME_YES") == "1"
DRY_RUN = os.getenv("DRY_RUN") == "1"
ON_ERROR = os.getenv("ON_ERROR", "continue")  # continue | stop


class UpdateAborted(Exception):
    pass


def resolve_user_id(session, upn: str) -> str:
    resp = session.get(f"{GRAPH}/users/{quote(upn)}?$select=id", timeout=30)
    resp.raise_for_status()
    return resp.json()["id"]


def matching_devices(session, prefix: str):
    # managedDevices has no startswith on deviceName, so match client-side
    url = f"{GRAPH}/deviceManagement/managedDevices?$select=id,deviceName,userPrincipalName"
    p = prefix.lower()
    return [d for d in paged_get(url, CLIENT, client=session, timeout=60)
            if (d.get("deviceName") or "").lower().startswith(p)]


def set_primary_user(session, device_id: str, user_id: str):
    # Primary user assignment is only exposed on beta
    resp = session.post(
        f"{GRAPH_BETA}/deviceManagement/managedDevices/{device_id}/users/$ref",
        json={"@odata.id": f"{GRAPH_BETA}/users/{user_id}"},
        timeout=30,
    )
    resp.raise_for_status()


def update_devices(session, devices, user_id: str, on_error: str = "continue", dry_run: bool = False):
    """Return (updated, failed) device names."""
    updated, failed = [], []
    for d in devices:
        name = d.get("deviceName") or d["id"]
        if dry_run:
            print(f"[dry-run] {name}: {d.get('userPrincipalName') or '-'} -> {user_id}")
            updated.append(name)
            continue
        try:
            set_primary_user(session, d["id"], user_id)
        except requests.RequestException as e:
            if on_error == "stop":
                raise UpdateAborted(f"{name}: {e}") from e
            print(f"[warn] {name}: {e}")
            failed.append(name)
            continue
        print(f"{name}: primary user set")
        updated.append(name)
    return updated, failed


def main():
    if not DEVICE_NAME_PREFIX or not TARGET_UPN:
        raise SystemExit("Set DEVICE_NAME_PREFIX and TARGET_UPN")
    if ON_ERROR not in ("continue", "stop"):
        raise SystemExit(f"ON_ERROR must be 'continue' or 'stop', got {ON_ERROR!r}")

    try:
        auth = acquire_app_token(*app_settings_from_env())
    except AuthError as e:
        raise SystemExit(str(e))

    with auth.session() as session:
        try:
            user_id = resolve_user_id(session, TARGET_UPN)
            devices = matching_devices(session, DEVICE_NAME_PREFIX)
        except (GraphPagingError, requests.RequestException) as e:
            raise SystemExit(f"Lookup failed: {e}")

        if not devices:
            print(f"No devices starting with '{DEVICE_NAME_PREFIX}'")
            return
        for d in devices:
            print(f"  {d.get('deviceName')}  (current: {d.get('userPrincipalName') or '-'})")
        if not DRY_RUN and not confirm(f"Set primary user of {len(devices)} device(s) to {TARGET_UPN}?", ASSUME_YES):
            print("Aborted, nothing changed")
            return

        try:
            updated, failed = update_devices(session, devices, user_id, ON_ERROR, DRY_RUN)
        except UpdateAborted as e:
            raise SystemExit(f"Stopped at first failure: {e}")

    print(f"Updated: {len(updated)}  Failed: {len(failed)}")


if __name__ == "__main__":
    main()
