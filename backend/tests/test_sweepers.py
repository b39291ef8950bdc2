"""
Tests for the expiry and timeout sweepers.
"""
from datetime import timedelta

import pytest

from fakes import RecordingQueue, create_body
from shared.errors import StoreUnavailableError
from shared.events import EventEmitter
from shared.models import EventType, JobStatus
from shared.sweepers import ExpirySweeper, TimeoutSweeper
from shared.transitions import Equals


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def expiry(store, bus, queue, clock):
    return ExpirySweeper(store, EventEmitter(bus, queue), clock=clock)


@pytest.fixture
def timeout(store, bus, queue, clock):
    return TimeoutSweeper(store, EventEmitter(bus, queue), clock=clock)


def _sweep_events(bus, event_type):
    return [e for e in bus.events if e.event_type == event_type]


class TestTimeoutSweeper:

    def test_reverts_stale_claim_once(self, engine, store, bus, queue, timeout, owner, seeker, clock):
        job = engine.create(owner, create_body(timeToCompleteSeconds=60))
        engine.claim(seeker, job.jobId)
        clock.advance(seconds=120)

        result = timeout.run()

        assert result.to_dict() == {'checked': 1, 'transitioned': 1, 'skipped': 0, 'failed': 0}
        reverted = store.get(job.jobId)
        assert reverted.status == JobStatus.OPEN
        assert reverted.claimerId is None

        events = _sweep_events(bus, EventType.TIMED_OUT)
        assert len(events) == 1
        assert events[0].detail['claimerId'] == seeker.user_id
        assert [m.event_type for m in queue.messages] == [EventType.TIMED_OUT]

        # nothing left to do on the next run
        assert timeout.run().to_dict() == {'checked': 0, 'transitioned': 0, 'skipped': 0, 'failed': 0}
        assert len(_sweep_events(bus, EventType.TIMED_OUT)) == 1

    def test_leaves_live_claims_alone(self, engine, store, timeout, owner, seeker, clock):
        job = engine.create(owner, create_body(timeToCompleteSeconds=600))
        engine.claim(seeker, job.jobId)
        clock.advance(seconds=60)

        assert timeout.run().transitioned == 0
        assert store.get(job.jobId).status == JobStatus.CLAIMED

    def test_submitted_jobs_are_not_candidates(self, engine, store, timeout, owner, seeker, clock):
        job = engine.create(owner, create_body(timeToCompleteSeconds=60))
        engine.claim(seeker, job.jobId)
        engine.submit(seeker, job.jobId)
        clock.advance(seconds=120)

        assert timeout.run().checked == 0
        assert store.get(job.jobId).status == JobStatus.SUBMITTED


class TestExpirySweeper:

    def test_expires_active_jobs(self, engine, store, bus, queue, expiry, owner, seeker, clock):
        open_job = engine.create(owner, create_body(expirySeconds=300))
        claimed = engine.create(owner, create_body(expirySeconds=300))
        engine.claim(seeker, claimed.jobId)
        fresh = engine.create(owner, create_body(expirySeconds=86400))
        clock.advance(seconds=301)

        result = expiry.run()

        assert result.transitioned == 2
        assert store.get(open_job.jobId).status == JobStatus.EXPIRED
        expired_claim = store.get(claimed.jobId)
        assert expired_claim.status == JobStatus.EXPIRED
        assert expired_claim.claimerId == seeker.user_id
        assert store.get(fresh.jobId).status == JobStatus.OPEN

        events = _sweep_events(bus, EventType.EXPIRED)
        assert sorted(e.detail['originalStatus'] for e in events) == [JobStatus.CLAIMED, JobStatus.OPEN]
        assert len(queue.messages) == 2

    def test_second_run_is_a_no_op(self, engine, store, bus, expiry, owner, clock):
        job = engine.create(owner, create_body(expirySeconds=60))
        clock.advance(seconds=61)

        assert expiry.run().transitioned == 1
        assert expiry.run().to_dict() == {'checked': 0, 'transitioned': 0, 'skipped': 0, 'failed': 0}
        assert store.get(job.jobId).status == JobStatus.EXPIRED
        assert len(_sweep_events(bus, EventType.EXPIRED)) == 1

    def test_candidate_changed_by_racing_user_is_skipped(self, engine, store, bus, queue, owner, clock):
        job = engine.create(owner, create_body(expirySeconds=60))
        clock.advance(seconds=61)

        class RelistDuringSweep(ExpirySweeper):
            def plan(self, candidate, now):
                transition = super().plan(candidate, now)
                # the owner relists between the scan and the write
                engine.relist(owner, candidate.jobId, timedelta(days=1))
                return transition

        result = RelistDuringSweep(store, EventEmitter(bus, queue), clock=clock).run()

        assert result.to_dict() == {'checked': 1, 'transitioned': 0, 'skipped': 1, 'failed': 0}
        assert store.get(job.jobId).status == JobStatus.OPEN
        assert _sweep_events(bus, EventType.EXPIRED) == []

    def test_failure_on_one_job_does_not_stop_the_sweep(self, engine, store, expiry, owner, clock):
        broken = engine.create(owner, create_body(expirySeconds=60))
        healthy = engine.create(owner, create_body(expirySeconds=60))
        store.unavailable.add(broken.jobId)
        clock.advance(seconds=61)

        result = expiry.run()

        assert result.to_dict() == {'checked': 2, 'transitioned': 1, 'skipped': 0, 'failed': 1}
        assert store.get(healthy.jobId).status == JobStatus.EXPIRED
        assert store.get(broken.jobId).status == JobStatus.OPEN

    def test_unparseable_row_is_counted_failed(self, engine, store, expiry, owner, clock):
        broken = engine.create(owner, create_body(expirySeconds=60))
        healthy = engine.create(owner, create_body(expirySeconds=60))
        # written by hand, sorts before any ISO timestamp of the same day
        store.conditional_update(
            broken.jobId, {'expiryDate': '2026-03-02 09:00 UTC'}, (), Equals('jobId', broken.jobId))
        clock.advance(seconds=61)

        result = expiry.run()

        assert result.to_dict() == {'checked': 2, 'transitioned': 1, 'skipped': 0, 'failed': 1}
        assert store.get(healthy.jobId).status == JobStatus.EXPIRED
        assert store.get(broken.jobId).status == JobStatus.OPEN

    def test_scan_failure_is_fatal(self, store, expiry):
        store.scan_error = StoreUnavailableError('Job store unavailable')

        with pytest.raises(StoreUnavailableError):
            expiry.run()
