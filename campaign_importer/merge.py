"""Deduplication and accumulation rules applied at the storage boundary."""
from __future__ import annotations

import copy
import logging
import threading
import uuid
from collections import defaultdict
from enum import Enum
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Protocol

from .models import CampaignMetric, Lead

LOGGER = logging.getLogger(__name__)


class LeadKey(NamedTuple):
    user_id: str
    campaign: str
    name: str


class MetricKey(NamedTuple):
    user_id: str
    campaign: str
    event_type: str
    profile: str


class ReimportPolicy(str, Enum):
    """What happens when the same import batch is merged a second time.

    ``ACCUMULATE`` adds the batch on top of its earlier contribution (top-up
    semantics). ``REPLACE_BATCH`` swaps the earlier contribution for the new
    one, so re-running an import leaves metrics unchanged.
    """

    ACCUMULATE = "accumulate"
    REPLACE_BATCH = "replace-batch"


def lead_key(user_id: str, lead: Lead) -> LeadKey:
    return LeadKey(user_id, lead.campaign, lead.name)


def metric_key(user_id: str, metric: CampaignMetric) -> MetricKey:
    return MetricKey(user_id, metric.campaign_name, metric.event_type, metric.profile_name)


def dedupe_leads(leads: Iterable[Lead], user_id: str) -> List[Lead]:
    """Collapse leads sharing a merge key; the later occurrence replaces the earlier one."""

    by_key: Dict[LeadKey, Lead] = {}
    duplicates = 0
    for lead in leads:
        key = lead_key(user_id, lead)
        if key in by_key:
            duplicates += 1
        by_key[key] = lead
    if duplicates:
        LOGGER.debug("Collapsed %s duplicate lead rows", duplicates)
    return list(by_key.values())


def merge_daily_data(existing: Mapping[str, int], incoming: Mapping[str, int]) -> Dict[str, int]:
    """Add two daily series pointwise."""

    merged = dict(existing)
    for day, value in incoming.items():
        merged[day] = merged.get(day, 0) + int(value or 0)
    return dict(sorted(merged.items()))


def merge_metric(existing: Optional[CampaignMetric], incoming: CampaignMetric) -> CampaignMetric:
    """Accumulate ``incoming`` into ``existing``; never overwrites wholesale."""

    if existing is None:
        merged = copy.deepcopy(incoming)
        if merged.daily_data:
            merged.total_count = sum(merged.daily_data.values())
        return merged

    if not existing.daily_data and not incoming.daily_data:
        total = existing.total_count + incoming.total_count
        return CampaignMetric(
            campaign_name=incoming.campaign_name,
            event_type=incoming.event_type,
            profile_name=incoming.profile_name,
            total_count=total,
        )

    daily = merge_daily_data(existing.daily_data, incoming.daily_data)
    return CampaignMetric(
        campaign_name=incoming.campaign_name,
        event_type=incoming.event_type,
        profile_name=incoming.profile_name,
        total_count=sum(daily.values()),
        daily_data=daily,
    )


def merge_metrics(
    existing: Iterable[CampaignMetric],
    incoming: Iterable[CampaignMetric],
    *,
    user_id: str = "",
) -> List[CampaignMetric]:
    """Fold ``incoming`` into ``existing`` by metric key, preserving first-seen order."""

    merged: Dict[MetricKey, CampaignMetric] = {}
    for metric in existing:
        key = metric_key(user_id, metric)
        merged[key] = merge_metric(merged.get(key), metric)
    for metric in incoming:
        key = metric_key(user_id, metric)
        merged[key] = merge_metric(merged.get(key), metric)
    return list(merged.values())


class CampaignStore(Protocol):
    """Persistence boundary the importer writes to."""

    def upsert_leads(self, user_id: str, leads: Iterable[Lead]) -> int:  # pragma: no cover - protocol
        """Insert or overwrite leads by :class:`LeadKey`; return how many were written."""

    def accumulate_metrics(
        self,
        user_id: str,
        metrics: Iterable[CampaignMetric],
        *,
        batch_id: str,
    ) -> int:  # pragma: no cover - protocol
        """Add metrics to the stored series; return how many keys were touched."""

    def leads(self, user_id: str) -> List[Lead]:  # pragma: no cover - protocol
        ...

    def metrics(self, user_id: str) -> List[CampaignMetric]:  # pragma: no cover - protocol
        ...

    def wipe(self, user_id: str) -> None:  # pragma: no cover - protocol
        ...


class InMemoryCampaignStore:
    """Reference :class:`CampaignStore` keeping per-batch metric contributions.

    Each user owns separate lead and metric tables guarded by that user's lock,
    so concurrent importers cannot both merge against the same baseline and
    lose an increment, and one user's reads never see another user's writes.
    """

    def __init__(self, reimport_policy: ReimportPolicy = ReimportPolicy.ACCUMULATE) -> None:
        self.reimport_policy = reimport_policy
        self._leads: Dict[str, Dict[LeadKey, Lead]] = {}
        self._contributions: Dict[str, Dict[MetricKey, Dict[str, CampaignMetric]]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
                self._leads[user_id] = {}
                self._contributions[user_id] = defaultdict(dict)
            return lock

    def upsert_leads(self, user_id: str, leads: Iterable[Lead]) -> int:
        written = 0
        with self._lock_for(user_id):
            stored_leads = self._leads[user_id]
            for lead in dedupe_leads(leads, user_id):
                key = lead_key(user_id, lead)
                stored = copy.deepcopy(lead)
                previous = stored_leads.get(key)
                stored.id = stored.id or (previous.id if previous else None) or str(uuid.uuid4())
                stored_leads[key] = stored
                written += 1
        return written

    def accumulate_metrics(self, user_id: str, metrics: Iterable[CampaignMetric], *, batch_id: str) -> int:
        touched = set()
        with self._lock_for(user_id):
            contributions = self._contributions[user_id]
            incoming: Dict[MetricKey, CampaignMetric] = {}
            for metric in metrics:
                key = metric_key(user_id, metric)
                incoming[key] = merge_metric(incoming.get(key), metric)

            for key, metric in incoming.items():
                batches = contributions[key]
                previous = batches.get(batch_id)
                if previous is not None and self.reimport_policy is ReimportPolicy.REPLACE_BATCH:
                    LOGGER.info("Replacing earlier contribution of batch %s for %s", batch_id[:12], key)
                    batches[batch_id] = metric
                else:
                    batches[batch_id] = merge_metric(previous, metric)
                touched.add(key)
        return len(touched)

    def leads(self, user_id: str) -> List[Lead]:
        with self._lock_for(user_id):
            return list(self._leads[user_id].values())

    def metrics(self, user_id: str) -> List[CampaignMetric]:
        with self._lock_for(user_id):
            results: List[CampaignMetric] = []
            for batches in self._contributions[user_id].values():
                if not batches:
                    continue
                merged: Optional[CampaignMetric] = None
                for contribution in batches.values():
                    merged = merge_metric(merged, contribution)
                results.append(merged)
            return results

    def wipe(self, user_id: str) -> None:
        with self._lock_for(user_id):
            self._leads[user_id].clear()
            self._contributions[user_id].clear()
        LOGGER.info("Wiped stored leads and metrics for user %s", user_id)


__all__ = [
    "CampaignStore",
    "InMemoryCampaignStore",
    "LeadKey",
    "MetricKey",
    "ReimportPolicy",
    "dedupe_leads",
    "merge_daily_data",
    "merge_metric",
    "merge_metrics",
]
