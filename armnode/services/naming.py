from __future__ import annotations
import re
import secrets
from typing import Optional

GROUP_DELIMITER = "-"


def safe_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9-]", "-", str(name))[:63].strip("-")


def storage_account_name(name: str) -> str:
    # Azure Storage account rules: [a-z0-9], length 3-24
    raw = (name or "storage").lower()
    sa_name = "".join(ch for ch in raw if ch.isalnum())
    if len(sa_name) < 3:
        sa_name = (sa_name + "stx")[:3]

    # Make sure it starts with a letter (not mandatory, but avoids some org policies)
    if not sa_name[0].isalpha():
        sa_name = "st" + sa_name
    return sa_name[:24]


def dns_label(name: str) -> str:
    label = re.sub(r"[^a-z0-9-]", "", str(name).lower()).strip("-")
    if not label or not label[0].isalpha():
        label = "vm" + label
    return label[:63]


def node_name(group: str, name: Optional[str] = None) -> str:
    """Deployment name for a node: '<group>-<suffix>' unless an explicit name is given."""
    if name:
        return safe_name(name)
    return f"{safe_name(group)}{GROUP_DELIMITER}{secrets.token_hex(3)}"


def extract_group(name: str) -> Optional[str]:
    """Group half of a '<group>-<suffix>' deployment name, None when there is no delimiter."""
    if not name or GROUP_DELIMITER not in name:
        return None
    group = name.rsplit(GROUP_DELIMITER, 1)[0]
    return group or None
