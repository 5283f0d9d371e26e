import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from tally.core.clock import LamportClock


@pytest.mark.ut
def test_initial_clock_is_zero():
    assert LamportClock().current() == 0


@pytest.mark.ut
def test_advance_increments_by_one():
    clock = LamportClock()
    assert clock.advance() == 1
    assert clock.advance() == 2
    assert clock.current() == 2


@pytest.mark.ut
def test_merge_sets_max_plus_one():
    clock = LamportClock()
    clock.advance()                 # 1
    assert clock.merge(5) == 6      # max(1, 5) + 1
    assert clock.merge(4) == 7      # max(6, 4) + 1
    assert clock.current() == 7


@pytest.mark.ut
@pytest.mark.parametrize("prior, remote", [(0, 0), (3, 10), (10, 3), (7, 7)])
def test_merge_then_current_is_max_plus_one(prior, remote):
    clock = LamportClock(prior)
    clock.merge(remote)
    assert clock.current() == max(prior, remote) + 1


@pytest.mark.ut
def test_merge_rejects_negative_remote():
    clock = LamportClock()
    with pytest.raises(ValueError):
        clock.merge(-1)
    assert clock.current() == 0


@pytest.mark.ut
def test_negative_initial_value_rejected():
    with pytest.raises(ValueError):
        LamportClock(-3)


@pytest.mark.ut
def test_concurrent_calls_lose_no_update():
    clock = LamportClock()
    remotes = [i * 3 for i in range(500)]
    results: list[int] = []
    lock = threading.Lock()

    def work(i: int) -> None:
        value = clock.merge(remotes[i]) if i % 2 else clock.advance()
        with lock:
            results.append(value)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(work, range(len(remotes))))

    assert clock.current() >= len(remotes)
    assert clock.current() > max(remotes)
    # every event got its own value
    assert len(set(results)) == len(results)


@pytest.mark.ut
def test_merge_result_exceeds_observed_value():
    clock = LamportClock()
    observed = clock.advance()
    assert clock.merge(observed) > observed
