from __future__ import annotations

import threading
from datetime import UTC, datetime

from pyjuls.models.location import LocationReport
from pyjuls.store import LocationStore


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _report(lat: float, lon: float, ts: int) -> LocationReport:
    return LocationReport(latitude=lat, longitude=lon, timestamp_value=ts)


def test_store_starts_empty() -> None:
    store = LocationStore()

    assert store.get() is None
    assert store.is_empty
    assert store.snapshot() == (None, None)


def test_last_write_wins_by_arrival_not_timestamp() -> None:
    store = LocationStore()
    newer = _report(-12.0, -77.0, 2_000)
    older = _report(-13.0, -78.0, 1_000)

    store.set(newer)
    # Older fix arriving later still replaces the stored one.
    store.set(older)

    assert store.get() == older


def test_snapshot_records_write_time() -> None:
    store = LocationStore(clock=_dt)
    report = _report(1.0, 2.0, 5)

    store.set(report)

    assert store.snapshot() == (report, _dt())


def test_get_returns_the_immutable_stored_report() -> None:
    store = LocationStore()
    report = _report(1.0, 2.0, 5)
    store.set(report)

    first = store.get()
    second = store.get()

    assert first is second
    assert first.model_config.get("frozen") is True  # type: ignore[union-attr]


def test_concurrent_writers_and_readers_never_see_torn_reports() -> None:
    store = LocationStore()
    writers = 4
    writes_per_writer = 500
    # Each writer uses latitude == longitude / 2 == its id, so a mixed
    # report would break the relation.
    expected = {(float(w), float(w * 2), w + 1) for w in range(writers)}
    seen: set[tuple[float, float, int]] = set()
    errors: list[str] = []
    done = threading.Event()

    def writer(w: int) -> None:
        report = _report(float(w), float(w * 2), w + 1)
        for _ in range(writes_per_writer):
            store.set(report)

    def reader() -> None:
        while not done.is_set():
            report = store.get()
            if report is None:
                continue
            key = (report.latitude, report.longitude, report.timestamp_value)
            if key not in expected:
                errors.append(f"torn read: {key}")
            seen.add(key)

    readers = [threading.Thread(target=reader) for _ in range(2)]
    for thread in readers:
        thread.start()
    threads = [threading.Thread(target=writer, args=(w,)) for w in range(writers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    done.set()
    for thread in readers:
        thread.join()

    assert errors == []
    final = store.get()
    assert final is not None
    assert (final.latitude, final.longitude, final.timestamp_value) in expected
