"""Property-based tests for batch conversion.

For any mix of failing and succeeding inputs:
- at most one job is CONVERTING at any time
- every failing job ends in ERROR and every other job in COMPLETED
- a job holds an output handle if and only if it is COMPLETED
- removing every job afterwards revokes every handle exactly once
"""

import asyncio
import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from vbt.engine.gateway import EngineGateway
from vbt.models.signals import RatioSignal
from vbt.models.types import FileSource, JobState
from vbt.services.queue import JobQueue

from conftest import FakeBackend


def _run_batch(outcomes: list[bool], runs: int):
    with tempfile.TemporaryDirectory() as tmp:
        paths = []
        for i, succeeds in enumerate(outcomes):
            path = Path(tmp) / f"clip_{i}.webm"
            path.write_bytes((b"OK" if succeeds else b"FAIL") + str(i).encode())
            paths.append(path)

        backend = FakeBackend(signals=[RatioSignal(0.5)])
        gateway = EngineGateway(backend)
        converting_counts = []
        queue = JobQueue(gateway)
        jobs = queue.submit([FileSource.from_path(p) for p in paths])
        queue._on_change = lambda s: converting_counts.append(
            sum(1 for j in jobs if j.state is JobState.CONVERTING)
        )

        async def scenario():
            await gateway.initialize()
            return await asyncio.gather(*(queue.run_all() for _ in range(runs)))

        results = asyncio.run(scenario())
        states = [(j.state, j.output_handle is not None) for j in jobs]

        store = queue.resources.store
        queue.clear()
        return results, states, converting_counts, store


class TestBatchErrorResilience:
    """One failing job never affects the others."""

    @given(outcomes=st.lists(st.booleans(), min_size=1, max_size=8), runs=st.integers(1, 3))
    @settings(max_examples=50, deadline=None)
    def test_failures_are_contained(self, outcomes, runs):
        results, states, converting_counts, store = _run_batch(outcomes, runs)

        assert max(converting_counts, default=0) <= 1
        for succeeds, (state, has_output) in zip(outcomes, states):
            assert state is (JobState.COMPLETED if succeeds else JobState.ERROR)
            assert has_output == (state is JobState.COMPLETED)

        first = results[0]
        assert first.total == len(outcomes)
        assert first.successful == sum(outcomes)
        assert first.failed == len(outcomes) - sum(outcomes)

    @given(outcomes=st.lists(st.booleans(), min_size=1, max_size=8))
    @settings(max_examples=30, deadline=None)
    def test_every_handle_revoked_exactly_once(self, outcomes):
        _, _, _, store = _run_batch(outcomes, 1)
        assert store.live_handles() == []
        assert store.revoked_count == store.created_count
