"""Credential masking for operation snapshots leaving the tracker.

Clone workflows sometimes stash Google Ads API credentials in the metadata
bag or in log details. Keys are compared after lowercasing and dropping
``_``/``-`` separators, so ``developer_token``, ``developerToken`` and
``DEVELOPER-TOKEN`` all match the same marker.
"""

from __future__ import annotations

from collections.abc import Mapping

_MAX_REDACT_DEPTH = 20

# Google Ads API / OAuth2 credential fields (substring match on normalized keys).
SENSITIVE_KEY_MARKERS: tuple[str, ...] = (
    "developertoken",
    "refreshtoken",
    "accesstoken",
    "idtoken",
    "clientsecret",
    "privatekey",
    "jsonkey",
    "password",
    "apikey",
    "authorization",
    "credential",
)


def _normalize_key(key: object) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def is_sensitive_key(key: object) -> bool:
    normalized = _normalize_key(key)
    return any(marker in normalized for marker in SENSITIVE_KEY_MARKERS)


def redact_sensitive_fields(
    value: object,
    *,
    mask: str = "***",
    depth: int = 0,
    max_depth: int = _MAX_REDACT_DEPTH,
) -> object:
    """Return a copy of ``value`` with credential values replaced by ``mask``.

    Nested mappings and sequences are walked; anything deeper than
    ``max_depth`` collapses to ``mask``.
    """
    if depth >= max_depth:
        return mask
    if isinstance(value, Mapping):
        return {
            key: mask
            if is_sensitive_key(key)
            else redact_sensitive_fields(val, mask=mask, depth=depth + 1, max_depth=max_depth)
            for key, val in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [
            redact_sensitive_fields(item, mask=mask, depth=depth + 1, max_depth=max_depth)
            for item in value
        ]
    return value
