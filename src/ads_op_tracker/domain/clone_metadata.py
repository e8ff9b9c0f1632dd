"""Typed read-only view over the metadata written by campaign clone workflows.

The tracker stores metadata as an opaque mapping. The retry engine and the
diagnostic rules only know about the keys below, and read them through
``CloneMetadata`` so new operation types never require touching the core.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

CUSTOMER_ID = "customerId"
CAMPAIGN_IDS = "campaignIds"
CHUNK_SIZE = "chunkSize"
CONFIG = "config"
COMPLETED_CAMPAIGNS = "completedCampaigns"
FAILED_CAMPAIGNS = "failedCampaigns"
RETRY_COUNT = "retryCount"

ORIGINAL_OPERATION_ID = "originalOperationId"
ORIGINAL_TYPE = "originalType"
RETRY_OF = "retryOf"
RETRY_TIME = "retryTime"


@dataclass(frozen=True)
class FailedItem:
    id: str
    error: str | None = None


@dataclass(frozen=True)
class CloneConfig:
    name_template: str | None
    create_negative_exact_keywords: bool


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _item_id(item: Any) -> str | None:
    if isinstance(item, Mapping):
        value = item.get("id")
        return str(value) if value is not None else None
    if item is None:
        return None
    return str(item)


class CloneMetadata:
    def __init__(self, metadata: Mapping[str, Any] | None) -> None:
        self._raw: Mapping[str, Any] = metadata or {}

    @property
    def customer_id(self) -> str | None:
        value = self._raw.get(CUSTOMER_ID)
        return str(value) if value not in (None, "") else None

    @property
    def campaign_ids(self) -> list[str]:
        return [str(item) for item in _as_list(self._raw.get(CAMPAIGN_IDS)) if item is not None]

    def chunk_size(self, default: int) -> int:
        value = self._raw.get(CHUNK_SIZE)
        if isinstance(value, bool):
            return default
        try:
            size = int(value)
        except (TypeError, ValueError):
            return default
        return size if size > 0 else default

    @property
    def raw_config(self) -> Mapping[str, Any] | None:
        value = self._raw.get(CONFIG)
        return value if isinstance(value, Mapping) else None

    @property
    def config(self) -> CloneConfig | None:
        raw = self.raw_config
        if raw is None:
            return None
        return CloneConfig(
            name_template=raw.get("nameTemplate") or raw.get("name"),
            create_negative_exact_keywords=bool(raw.get("createNegativeExactKeywords")),
        )

    @property
    def failed_items(self) -> list[FailedItem]:
        items: list[FailedItem] = []
        for entry in _as_list(self._raw.get(FAILED_CAMPAIGNS)):
            item_id = _item_id(entry)
            if item_id is None:
                continue
            error = entry.get("error") if isinstance(entry, Mapping) else None
            items.append(FailedItem(id=item_id, error=str(error) if error is not None else None))
        return items

    @property
    def failed_item_ids(self) -> list[str]:
        return [item.id for item in self.failed_items]

    @property
    def completed_item_ids(self) -> list[str]:
        ids = (_item_id(entry) for entry in _as_list(self._raw.get(COMPLETED_CAMPAIGNS)))
        return [item_id for item_id in ids if item_id is not None]

    @property
    def has_completed_items(self) -> bool:
        return bool(self.completed_item_ids)

    @property
    def retry_count(self) -> int:
        value = self._raw.get(RETRY_COUNT)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return 0
