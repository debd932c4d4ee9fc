import asyncio
import csv
import io
import threading

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import OperationalError

from admin_backend.schemas.schemas import AuditEntry, AuditEntryIn, AuditFilters
from admin_backend.services.audit_service import (
    CSV_COLUMNS, AuditTrail, LocalAuditBuffer, to_csv,
)


def entry(action="user.suspend", **kw):
    data = dict(action=action, target_id="u1", target_type="user", details="spam",
                admin_id="7", admin_role="support_admin", ip_address="10.0.0.1")
    data.update(kw)
    return AuditEntryIn(**data)


class TestLocalAuditBuffer:
    def test_evicts_oldest_first(self):
        trail = AuditTrail(fallback=LocalAuditBuffer(3))

        async def run():
            return [await trail.append(entry(details=str(i))) for i in range(5)]

        written = asyncio.run(run())
        kept = trail.fallback.snapshot()
        assert len(kept) == 3
        assert [e.id for e in kept] == [e.id for e in written[2:]]

    def test_concurrent_appends_from_threads(self):
        buffer = LocalAuditBuffer(1000)
        records = [AuditEntry.create(entry()) for _ in range(50)]

        def worker():
            for record in records:
                buffer.append(record)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(buffer) == 400

    def test_clear(self):
        buffer = LocalAuditBuffer(5)
        buffer.clear()
        assert len(buffer) == 0
        assert buffer.snapshot() == []


class TestAppend:
    @pytest.mark.asyncio
    async def test_append_then_query_durable(self, trail):
        written = await trail.append(entry())
        page = await trail.query()
        assert page.source == "durable"
        assert page.total == 1
        assert page.entries[0].id == written.id
        assert page.entries[0].timestamp == written.timestamp

    @pytest.mark.asyncio
    async def test_append_accepts_dict(self, trail):
        written = await trail.append({"action": "listing.approve", "target_id": 42})
        assert written.target_id == "42"
        assert written.id.startswith("audit_")

    @pytest.mark.asyncio
    async def test_sink_down_append_still_succeeds(self, offline_trail):
        written = await offline_trail.append(entry())
        page = await offline_trail.query(AuditFilters(action="user.suspend"))
        assert page.source == "local"
        assert [e.id for e in page.entries] == [written.id]

    @pytest.mark.asyncio
    async def test_no_sink_configured_uses_fallback(self):
        trail = AuditTrail()
        written = await trail.append(entry())
        assert (await trail.export_all()) == [written]

    @pytest.mark.asyncio
    async def test_ids_unique_under_concurrency(self, trail):
        written = await asyncio.gather(*(trail.append(entry()) for _ in range(50)))
        assert len({e.id for e in written}) == 50
        assert (await trail.query(page_size=100)).total == 50

    @pytest.mark.asyncio
    async def test_entries_are_immutable(self, trail):
        written = await trail.append(entry())
        with pytest.raises(PydanticValidationError):
            written.action = "user.unsuspend"

    def test_no_mutation_api(self, trail):
        for name in ("update", "delete", "remove", "edit"):
            assert not hasattr(trail, name)

    def test_action_is_required(self):
        with pytest.raises(PydanticValidationError):
            AuditEntryIn(action="")


class TestQuery:
    @pytest.fixture
    def seeded(self, trail):
        async def seed():
            return [
                await trail.append(entry("user.suspend", admin_id="1", target_type="user")),
                await trail.append(entry("user.suspend_temp", admin_id="2", target_type="user")),
                await trail.append(entry("escrow.release", admin_id="1", target_type="booking")),
                await trail.append(entry("listing.approve", admin_id="3", target_type="listing")),
            ]
        return asyncio.run(seed())

    @pytest.mark.parametrize("filters,expected", [
        (AuditFilters(action="user.suspend"), {0}),
        (AuditFilters(admin_id="1"), {0, 2}),
        (AuditFilters(admin_id=1), {0, 2}),
        (AuditFilters(target_type="user"), {0, 1}),
        (AuditFilters(action="escrow.release", admin_id="1"), {2}),
        (AuditFilters(action="nothing"), set()),
        (AuditFilters(), {0, 1, 2, 3}),
    ])
    def test_filters_match_on_both_paths(self, trail, seeded, filters, expected):
        expected_ids = {seeded[i].id for i in expected}

        durable = asyncio.run(trail.query(filters))
        assert durable.source == "durable"
        assert {e.id for e in durable.entries} == expected_ids

        local = trail._query_local(filters)
        assert {e.id for e in local} == expected_ids

    def test_date_range_is_inclusive(self, trail, seeded):
        target = seeded[1]
        filters = AuditFilters(start=target.timestamp, end=target.timestamp)
        durable = asyncio.run(trail.query(filters))
        assert [e.id for e in durable.entries] == [target.id]
        assert [e.id for e in trail._query_local(filters)] == [target.id]

    def test_newest_first_and_paginated(self, trail, seeded):
        first = asyncio.run(trail.query(page=1, page_size=3))
        second = asyncio.run(trail.query(page=2, page_size=3))
        assert first.total == second.total == 4
        assert len(first.entries) == 3 and len(second.entries) == 1
        stamps = [e.timestamp for e in first.entries + second.entries]
        assert stamps == sorted(stamps, reverse=True)
        assert {e.id for e in first.entries + second.entries} == {e.id for e in seeded}

    def test_export_all_is_unpaginated(self, trail, seeded):
        exported = asyncio.run(trail.export_all(AuditFilters(target_type="user")))
        assert {e.id for e in exported} == {seeded[0].id, seeded[1].id}


def test_to_csv(trail):
    async def run():
        await trail.append(entry(details="has, a comma"))
        return await trail.export_all()

    rows = list(csv.DictReader(io.StringIO(to_csv(asyncio.run(run())))))
    assert len(rows) == 1
    assert list(rows[0]) == CSV_COLUMNS
    assert rows[0]["details"] == "has, a comma"
    assert rows[0]["admin_role"] == "support_admin"


class FlakyCommits:
    """Session factory whose first ``failures`` commits raise."""

    def __init__(self, factory, failures=1):
        self.factory = factory
        self.failures = failures

    def __call__(self):
        session = self.factory()
        if self.failures:
            self.failures -= 1

            def commit():
                raise OperationalError("COMMIT", {}, Exception("database is locked"))

            session.commit = commit
        return session


class TestFailedWriteReadableStore:
    @pytest.mark.asyncio
    async def test_query_includes_entry_only_in_fallback(self, session_factory):
        trail = AuditTrail(session_factory=FlakyCommits(session_factory),
                           fallback=LocalAuditBuffer(200))
        written = await trail.append(entry())

        page = await trail.query(AuditFilters(action="user.suspend"))
        assert page.source == "durable"
        assert page.total == 1
        assert [e.id for e in page.entries] == [written.id]
        assert [e.id for e in await trail.export_all()] == [written.id]

    @pytest.mark.asyncio
    async def test_merged_entries_paginate_and_filter(self, session_factory):
        trail = AuditTrail(session_factory=FlakyCommits(session_factory),
                           fallback=LocalAuditBuffer(200))
        lost = await trail.append(entry("user.suspend"))
        stored = await trail.append(entry("escrow.release"))

        everything = await trail.query(page_size=1)
        assert everything.total == 2
        second = await trail.query(page=2, page_size=1)
        assert {everything.entries[0].id, second.entries[0].id} == {lost.id, stored.id}

        only_release = await trail.query(AuditFilters(action="escrow.release"))
        assert [e.id for e in only_release.entries] == [stored.id]
