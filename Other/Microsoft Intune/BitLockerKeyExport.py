# ╔══════════════════════════════════════════════════════════════════════╗
# ║  SCRIPT                                                              ║
# ║  Name     : BitLockerKeyExport.py                                    ║
# ║  Notes    : Export BitLocker recovery keys with their device names   ║
# ║             Needs BitlockerKey.Read.All + Device.Read.All            ║
# ╚══════════════════════════════════════════════════════════════════════╝

import os

import requests

from graph_auth import GRAPH, AuthError, acquire_app_token, app_settings_from_env
from graph_export import write_csv
from graph_paging import CLIENT, GraphPagingError, paged_get

OUTPUT_FILE = os.getenv("OUTPUT_FILE", "bitlocker_keys.csv")
INCLUDE_KEYS = os.getenv("INCLUDE_KEYS", "1") == "1"  # 0 = metadata only, no key reads

# Recovery key reads are audited; Graph requires the caller to identify itself
AUDIT_HEADERS = {"ocp-client-name": "BitLockerKeyExport", "ocp-client-version": "1.0"}

FIELDS = ["deviceName", "deviceId", "keyId", "volumeType", "createdDateTime", "key"]


def device_names(session) -> dict:
    url = f"{GRAPH}/devices?$select=deviceId,displayName&$top=999"
    return {d["deviceId"]: d.get("displayName", "") for d in paged_get(url, CLIENT, client=session, timeout=60)}


def recovery_keys(session):
    url = f"{GRAPH}/informationProtection/bitlocker/recoveryKeys"
    return paged_get(url, CLIENT, client=session, timeout=60)


def read_key(session, key_id: str) -> str:
    resp = session.get(f"{GRAPH}/informationProtection/bitlocker/recoveryKeys/{key_id}?$select=key", timeout=30)
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, dict):
        raise ValueError(f"expected an object, got {type(data).__name__}")
    return data.get("key", "")


def build_rows(session, include_keys: bool = True):
    names = device_names(session)
    skipped = 0
    rows = []
    for k in recovery_keys(session):
        row = {
            "deviceName": names.get(k.get("deviceId"), ""),
            "deviceId": k.get("deviceId", ""),
            "keyId": k.get("id", ""),
            "volumeType": k.get("volumeType", ""),
            "createdDateTime": k.get("createdDateTime", ""),
        }
        if include_keys:
            try:
                row["key"] = read_key(session, k["id"])
            except (requests.RequestException, ValueError) as e:
                print(f"[warn] key {k.get('id')} ({row['deviceName'] or row['deviceId']}): {e}")
                skipped += 1
                continue
        rows.append(row)
    return rows, skipped


def main():
    try:
        auth = acquire_app_token(*app_settings_from_env())
    except AuthError as e:
        raise SystemExit(str(e))

    with auth.session(AUDIT_HEADERS) as session:
        try:
            rows, skipped = build_rows(session, INCLUDE_KEYS)
        except GraphPagingError as e:
            raise SystemExit(f"Recovery key listing failed: {e}")

    count = write_csv(OUTPUT_FILE, rows, FIELDS)
    print(f"Exported {count} recovery keys to {OUTPUT_FILE}")
    if skipped:
        print(f"[warn] {skipped} key(s) could not be read and were skipped")


if __name__ == "__main__":
    main()
