import threading
from concurrent.futures import ThreadPoolExecutor

from campaign_importer.merge import (
    InMemoryCampaignStore,
    ReimportPolicy,
    dedupe_leads,
    merge_daily_data,
    merge_metric,
    merge_metrics,
)
from campaign_importer.models import CampaignMetric, Lead


def _metric(daily=None, total_count=0, event_type="invites", campaign="C1"):
    return CampaignMetric(campaign, event_type, "P1", total_count=total_count, daily_data=dict(daily or {}))


def test_duplicate_leads_keep_only_the_later_row():
    first = Lead(name="Ada", campaign="C1", company="Old Co", position="CTO")
    second = Lead(name="Ada", campaign="C1", company="New Co")
    other = Lead(name="Ada", campaign="C2")

    leads = dedupe_leads([first, other, second], user_id="u1")

    assert len(leads) == 2
    ada = next(lead for lead in leads if lead.campaign == "C1")
    assert ada.company == "New Co"
    # Full overwrite: fields absent from the later row are not carried over.
    assert ada.position is None


def test_merge_daily_data_adds_overlapping_days():
    assert merge_daily_data({"2025-01-01": 2, "2025-01-02": 1}, {"2025-01-02": 3, "2025-01-03": 1}) == {
        "2025-01-01": 2,
        "2025-01-02": 4,
        "2025-01-03": 1,
    }


def test_merge_metric_recomputes_total_from_merged_map():
    merged = merge_metric(_metric({"2025-01-01": 2}, total_count=99), _metric({"2025-01-01": 3}, total_count=3))

    assert merged.daily_data == {"2025-01-01": 5}
    assert merged.total_count == 5


def test_merge_metric_adds_totals_without_daily_data():
    merged = merge_metric(_metric(total_count=4), _metric(total_count=6))

    assert merged.total_count == 10
    assert merged.daily_data == {}


def test_merge_metrics_folds_by_key():
    merged = merge_metrics(
        [_metric({"2025-01-01": 1}), _metric({"2025-01-01": 1}, event_type="connections")],
        [_metric({"2025-01-01": 2})],
        user_id="u1",
    )

    assert [(metric.event_type, metric.total_count) for metric in merged] == [("invites", 3), ("connections", 1)]


def test_store_overwrites_leads_and_keeps_ids():
    store = InMemoryCampaignStore()
    store.upsert_leads("u1", [Lead(name="Ada", campaign="C1", company="Old")])
    original_id = store.leads("u1")[0].id

    store.upsert_leads("u1", [Lead(name="Ada", campaign="C1", company="New")])

    leads = store.leads("u1")
    assert len(leads) == 1
    assert leads[0].company == "New"
    assert leads[0].id == original_id
    assert store.leads("someone-else") == []


def test_two_files_contributing_the_same_day_sum():
    store = InMemoryCampaignStore()

    store.accumulate_metrics("u1", [_metric({"2025-01-01": 2})], batch_id="file-a")
    store.accumulate_metrics("u1", [_metric({"2025-01-01": 3})], batch_id="file-b")

    (metric,) = store.metrics("u1")
    assert metric.daily_data == {"2025-01-01": 5}
    assert metric.total_count == 5


def test_accumulate_policy_double_counts_a_repeated_batch():
    store = InMemoryCampaignStore(ReimportPolicy.ACCUMULATE)

    store.accumulate_metrics("u1", [_metric({"2025-01-01": 2})], batch_id="same")
    store.accumulate_metrics("u1", [_metric({"2025-01-01": 2})], batch_id="same")

    assert store.metrics("u1")[0].total_count == 4


def test_replace_batch_policy_makes_reimport_idempotent():
    store = InMemoryCampaignStore(ReimportPolicy.REPLACE_BATCH)

    store.accumulate_metrics("u1", [_metric({"2025-01-01": 2})], batch_id="same")
    store.accumulate_metrics("u1", [_metric({"2025-01-01": 1})], batch_id="other")
    store.accumulate_metrics("u1", [_metric({"2025-01-01": 2})], batch_id="same")

    assert store.metrics("u1")[0].daily_data == {"2025-01-01": 3}


def test_concurrent_writers_do_not_lose_increments():
    store = InMemoryCampaignStore()

    def write(index):
        store.accumulate_metrics("u1", [_metric({"2025-01-01": 1})], batch_id=f"batch-{index}")

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(write, range(200)))

    assert store.metrics("u1")[0].total_count == 200


def test_reading_one_user_while_another_writes():
    store = InMemoryCampaignStore()
    store.upsert_leads("a", [Lead(name="Ada", campaign="C1")])
    store.accumulate_metrics("a", [_metric({"2025-01-01": 1})], batch_id="b")
    stop = threading.Event()
    errors = []

    def read():
        try:
            while not stop.is_set():
                assert len(store.metrics("a")) == 1
                assert len(store.leads("a")) == 1
        except Exception as exc:  # pragma: no cover - only on failure
            errors.append(exc)

    reader = threading.Thread(target=read)
    reader.start()
    try:
        for index in range(2000):
            store.accumulate_metrics("b", [_metric({"2025-01-01": 1}, campaign=f"C{index}")], batch_id="b")
            store.upsert_leads("b", [Lead(name=f"Lead {index}", campaign="C1")])
    finally:
        stop.set()
        reader.join()

    assert errors == []
    assert len(store.metrics("b")) == 2000
    assert len(store.leads("b")) == 2000


def test_wipe_only_affects_one_user():
    store = InMemoryCampaignStore()
    for user in ("u1", "u2"):
        store.upsert_leads(user, [Lead(name="Ada", campaign="C1")])
        store.accumulate_metrics(user, [_metric({"2025-01-01": 1})], batch_id="b")

    store.wipe("u1")

    assert store.leads("u1") == [] and store.metrics("u1") == []
    assert len(store.leads("u2")) == 1 and len(store.metrics("u2")) == 1
