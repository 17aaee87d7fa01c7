import os

from graph_auth import GRAPH, AuthError, acquire_app_token, app_settings_from_env
from graph_export import write_csv
from graph_paging import RAW, GraphPagingError, paged_get

OUTPUT_FILE = os.getenv("OUTPUT_FILE", "entra_users.csv")
FIELDS = ["id", "displayName", "userPrincipalName", "mail", "jobTitle", "department", "accountEnabled"]


def main():
    try:
        auth = acquire_app_token(*app_settings_from_env())
    except AuthError as e:
        raise SystemExit(str(e))

    url = f"{GRAPH}/users?$select={','.join(FIELDS)}&$top=999"
    try:
        users = list(paged_get(url, RAW, headers=auth.headers(), timeout=30))
    except GraphPagingError as e:
        raise SystemExit(f"User pull failed: {e}")

    count = write_csv(OUTPUT_FILE, users, FIELDS)
    print(f"Exported {count} users to {OUTPUT_FILE}")


if __name__ == "__main__":
    main()
