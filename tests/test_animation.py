import asyncio

from satsboard.client.animation import ChangeTracker, first_divergence
from satsboard.client.render import format_locale


def test_first_divergence() -> None:
    assert first_divergence("29850000", "29850001") == 7
    assert first_divergence("29850000", "29850000") is None
    assert first_divergence("98,500", "98,500.5") == 6
    assert first_divergence("1,000", "999") == 0


def test_locale_strings_diverge_after_separator() -> None:
    assert first_divergence(format_locale(29850000), format_locale(29850001)) == 9


def test_tracker_marks_tail_then_clears() -> None:
    cleared: list[str] = []

    async def go():
        t = ChangeTracker("btc_price_lkr", duration_sec=0.02, on_clear=cleared.append)
        assert t.update("29850000", "29850001") == 7
        marks = [t.is_changed(i) for i in range(8)]
        await asyncio.sleep(0.05)
        return t, marks

    t, marks = asyncio.run(go())
    assert marks == [False] * 7 + [True]
    assert t.marked_from is None
    assert cleared == ["btc_price_lkr"]


def test_new_change_restarts_timer() -> None:
    cleared: list[str] = []

    async def go():
        t = ChangeTracker("mempool", duration_sec=0.1, on_clear=cleared.append)
        t.update("15,000", "15,010")
        await asyncio.sleep(0.06)
        t.update("15,010", "16,010")
        await asyncio.sleep(0.06)
        mid = (t.marked_from, list(cleared))
        await asyncio.sleep(0.1)
        return mid

    mid = asyncio.run(go())
    assert mid == (1, [])
    assert cleared == ["mempool"]


def test_trackers_are_independent() -> None:
    async def go():
        a = ChangeTracker("a", duration_sec=0.01)
        b = ChangeTracker("b", duration_sec=10)
        a.update("1", "2")
        b.update("10", "11")
        await asyncio.sleep(0.03)
        out = (a.marked_from, b.marked_from)
        b.close()
        return out

    assert asyncio.run(go()) == (None, 1)


def test_unchanged_value_leaves_tracker_alone() -> None:
    async def go():
        t = ChangeTracker("fees", duration_sec=10)
        return t.update("12", "12"), t.marked_from

    assert asyncio.run(go()) == (None, None)
