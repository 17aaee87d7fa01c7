# ╔══════════════════════════════════════════════════════════════════════╗
# ║  SCRIPT                                                              ║
# ║  Name     : IntuneDeviceExport.py                                    ║
# ║  Notes    : Export Intune managed devices, optionally only stale     ║
# ║             ones or ones matching a name prefix                      ║
# ╚══════════════════════════════════════════════════════════════════════╝

import os
from datetime import datetime, timedelta, timezone

from graph_auth import GRAPH, AuthError, acquire_app_token, app_settings_from_env
from graph_export import odata_escape, odata_filter, write_csv
from graph_paging import RAW, GraphPagingError, paged_get

# ── Configuration ──────────────────────────────────────────────────────
# Needs DeviceManagementManagedDevices.Read.All (application)
DEVICE_OS = os.getenv("DEVICE_OS", "")                    # e.g. Windows, iOS, macOS
DEVICE_NAME_PREFIX = os.getenv("DEVICE_NAME_PREFIX", "")  # case-insensitive
STALE_DAYS = os.getenv("STALE_DAYS", "0")                 # 0 = no stale filter
OUTPUT_FILE = os.getenv("OUTPUT_FILE", "intune_devices.csv")

FIELDS = [
    "id", "deviceName", "operatingSystem", "osVersion", "serialNumber",
    "userPrincipalName", "complianceState", "lastSyncDateTime", "azureADDeviceId",
]


def parse_graph_time(value):
    # Graph returns e.g. 2025-08-27T10:15:00Z, sometimes with 7 fraction digits
    if not value:
        return None
    value = value.rstrip("Z")
    if "." in value:
        head, frac = value.split(".", 1)
        value = f"{head}.{frac[:6].ljust(6, '0')}"
    try:
        return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def device_url(os_name: str = "") -> str:
    url = f"{GRAPH}/deviceManagement/managedDevices?$select={','.join(FIELDS)}"
    flt = odata_filter(f"operatingSystem eq '{odata_escape(os_name)}'" if os_name else None)
    if flt:
        url += f"&$filter={flt}"
    return url


def select_devices(devices, name_prefix: str = "", stale_days: int = 0, now=None):
    """Client-side filters: managedDevices only supports a few $filter fields."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=stale_days) if stale_days else None
    prefix = name_prefix.lower()
    for d in devices:
        if prefix and not (d.get("deviceName") or "").lower().startswith(prefix):
            continue
        if cutoff:
            synced = parse_graph_time(d.get("lastSyncDateTime"))
            if synced and synced > cutoff:
                continue
        yield d


def main():
    try:
        stale_days = int(STALE_DAYS)
    except ValueError:
        raise SystemExit(f"STALE_DAYS must be a whole number of days, got {STALE_DAYS!r}")

    try:
        auth = acquire_app_token(*app_settings_from_env())
    except AuthError as e:
        raise SystemExit(str(e))

    devices = paged_get(device_url(DEVICE_OS), RAW, headers=auth.headers(), timeout=60)
    try:
        selected = list(select_devices(devices, DEVICE_NAME_PREFIX, stale_days))
    except GraphPagingError as e:
        raise SystemExit(f"Device pull failed: {e}")

    count = write_csv(OUTPUT_FILE, selected, FIELDS)
    print(f"Exported {count} devices to {OUTPUT_FILE}")


if __name__ == "__main__":
    main()
