"""
Tests for the watchpoint pool and check loop.

Covers:
  - Allocation order, exhaustion and slot reuse
  - Release of unknown / inactive numbers
  - list() ordering (newest first)
  - check(): continue vs halt, fire budget, baseline refresh
  - Free/active partition invariant under random allocate/release
"""

import random

import pytest
from hc11_sdb.config import NR_WP
from hc11_sdb.errors import PoolExhausted, NotFoundError, ParseError, EvalError
from hc11_sdb.watchpoint import WatchpointPool, CheckStatus, WatchHit


@pytest.fixture
def pool(evaluator):
    return WatchpointPool(evaluator)


def _assert_partition(pool):
    free = set(pool.free_ids())
    active = set(pool.active_ids())
    assert not free & active
    assert free | active == set(range(pool.capacity))
    assert pool.free_count + len(pool) == pool.capacity


# ─── Allocate / release ─────────────────────

class TestAllocate:
    def test_fresh_pool(self, pool):
        assert pool.capacity == NR_WP == 32
        assert pool.free_count == 32
        assert len(pool) == 0
        assert pool.list() == []

    def test_ids_in_creation_order(self, pool):
        assert [pool.allocate("1") for _ in range(3)] == [0, 1, 2]

    def test_exhaustion(self, pool):
        for _ in range(NR_WP):
            pool.allocate("$d")
        with pytest.raises(PoolExhausted):
            pool.allocate("$d")
        _assert_partition(pool)

    def test_reuse_after_release(self, pool):
        for _ in range(NR_WP):
            pool.allocate("1")
        pool.release(5)
        assert pool.allocate("2") == 5
        assert pool.get(5).expression == "2"

    def test_baseline_taken_at_allocate(self, pool):
        wp_id = pool.allocate("*0x100 + 1")
        wp = pool.get(wp_id)
        assert wp.last_value == 43
        assert wp.fire_budget == 1
        assert wp.in_use

    def test_bad_expression_leaves_pool_untouched(self, pool):
        with pytest.raises(ParseError):
            pool.allocate("1+")
        with pytest.raises(EvalError):
            pool.allocate("$nope")
        assert pool.free_count == NR_WP
        assert len(pool) == 0

    def test_zero_capacity_rejected(self, evaluator):
        with pytest.raises(ValueError):
            WatchpointPool(evaluator, capacity=0)


class TestRelease:
    def test_release_unknown(self, pool):
        pool.allocate("1")
        before = (pool.free_ids(), pool.active_ids())
        for bad in (1, 31, -1, 99):
            with pytest.raises(NotFoundError) as exc:
                pool.release(bad)
            assert exc.value.wp_id == bad
        assert (pool.free_ids(), pool.active_ids()) == before

    def test_double_release(self, pool):
        wp_id = pool.allocate("1")
        pool.release(wp_id)
        with pytest.raises(NotFoundError):
            pool.release(wp_id)

    def test_release_resets_slot(self, pool, target):
        wp_id = pool.allocate("*0x100")
        target.mem.write32(0x100, 7)
        assert pool.check().halted
        pool.release(wp_id)
        with pytest.raises(NotFoundError):
            pool.get(wp_id)

        again = pool.allocate("*0x100")
        assert again == wp_id
        wp = pool.get(again)
        assert wp.fire_budget == 1
        assert wp.hits == 0
        assert wp.last_value == 7

    def test_release_from_middle(self, pool):
        for i in range(3):
            pool.allocate(str(i))
        pool.release(1)
        assert pool.active_ids() == [2, 0]


class TestList:
    def test_newest_first(self, pool):
        pool.allocate("1")
        pool.allocate("$d")
        pool.allocate("*0x100")
        assert pool.list() == [(2, "*0x100"), (1, "$d"), (0, "1")]

    def test_restartable(self, pool):
        pool.allocate("1")
        assert pool.list() == pool.list()
        assert [wp.id for wp in pool] == [wp.id for wp in pool]


# ─── Check loop ─────────────────────

class TestCheck:
    def test_no_change_continues(self, pool):
        pool.allocate("*0x100")
        pool.allocate("$d")
        result = pool.check()
        assert result.status is CheckStatus.CONTINUE
        assert not result.halted
        assert result.hit is None
        assert all(wp.fire_budget == 1 for wp in pool)

    def test_empty_pool_continues(self, pool):
        assert not pool.check().halted

    def test_change_halts(self, pool, target):
        wp_id = pool.allocate("*0x100")
        target.mem.write32(0x100, 43)
        result = pool.check()
        assert result.halted
        assert result.hit == WatchHit(wp_id, "*0x100", 42, 43)
        wp = pool.get(wp_id)
        assert wp.fire_budget == 0
        assert wp.last_value == 43
        assert wp.hits == 1

    def test_budget_exhausted_goes_quiet(self, pool, target):
        pool.allocate("*0x100")
        target.mem.write32(0x100, 43)
        assert pool.check().halted
        target.mem.write32(0x100, 44)
        assert not pool.check().halted

    def test_stops_at_first_trigger(self, pool, target):
        older = pool.allocate("*0x100")
        newer = pool.allocate("$d")
        target.mem.write32(0x100, 1)
        target.regs.D = 0
        result = pool.check()
        assert result.hit.id == newer
        assert pool.get(older).fire_budget == 1
        assert pool.get(older).last_value == 42

        result = pool.check()
        assert result.hit.id == older

    def test_unevaluable_watch_skipped(self, pool, target):
        pool.allocate("$x / *0x100")
        target.mem.write32(0x100, 0)
        assert pool.check().status is CheckStatus.CONTINUE

    def test_reset_baselines(self, pool, target):
        wp_id = pool.allocate("*0x100")
        target.mem.write32(0x100, 99)
        pool.reset_baselines()
        assert pool.get(wp_id).last_value == 99
        assert not pool.check().halted

    def test_hit_formatting(self):
        text = str(WatchHit(3, "$d", 1, 2))
        assert "watchpoint 3: $d" in text
        assert "0x00000001" in text
        assert "0x00000002" in text


# ─── Invariant ─────────────────────

class TestPartitionInvariant:
    @pytest.mark.parametrize("seed", [1, 7, 1234])
    def test_random_sequences(self, evaluator, seed):
        rng = random.Random(seed)
        pool = WatchpointPool(evaluator, capacity=8)
        for _ in range(500):
            if rng.random() < 0.55:
                try:
                    pool.allocate("1")
                except PoolExhausted:
                    assert pool.free_count == 0
            else:
                wp_id = rng.randrange(-1, 9)
                try:
                    pool.release(wp_id)
                except NotFoundError:
                    assert wp_id not in pool.active_ids()
            _assert_partition(pool)
