"""Small helpers shared by the scripts: OData literals, CSV output, y/N prompts."""

import csv
import re


def odata_escape(value: str) -> str:
    # OData single quotes are escaped by doubling them
    return value.replace("'", "''")


def odata_filter(*clauses):
    """Join the non-empty clauses with ``and``; None when nothing is left."""
    parts = [c for c in clauses if c]
    return " and ".join(parts) if parts else None


def safe_filename(name: str) -> str:
    # Group/device display names can hold path separators and other junk
    cleaned = re.sub(r'[\\/:*?"<>|\x00-\x1f]+', "_", name).strip(" .")
    return cleaned or "_"


def write_csv(path, rows, fieldnames) -> int:
    """Write ``rows`` to ``path``; returns the row count.

    Pass a list, not a live paged_get stream: the file is opened first, so a
    failing page would leave a truncated export behind.
    """
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow({k: row.get(k, "") for k in fieldnames})
            count += 1
    return count


def confirm(question: str, assume_yes: bool = False, reader=input) -> bool:
    if assume_yes:
        return True
    answer = reader(f"{question} [y/N]: ")
    return answer.strip().lower() in ("y", "yes")
