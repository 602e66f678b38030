"""Strict recipient address check used before anything is handed to the mail provider.

Heuristics close to RFC 5322, not full compliance.
"""
import re

_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def is_valid_email(address) -> bool:
    if not address or not isinstance(address, str):
        return False
    if not _EMAIL_RE.match(address):
        return False

    local, _, domain = address.partition("@")

    if not local or len(local) > 64:
        return False
    if local.startswith(".") or local.endswith(".") or ".." in local:
        return False

    if not domain or len(domain) > 253:
        return False
    if domain.startswith(".") or domain.endswith(".") or ".." in domain:
        return False
    if "." not in domain:
        return False

    for label in domain.split("."):
        if label.startswith("-") or label.endswith("-") or len(label) > 63:
            return False
    return True
