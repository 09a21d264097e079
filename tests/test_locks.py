from datetime import date
import threading
import time

from app.locks import KeyedLocks, resource_day_key, user_day_key


def test_same_key_is_serialized():
    locks = KeyedLocks()
    key = resource_day_key("r-1", date(2024, 1, 10))
    inside = []
    overlaps = []

    def worker():
        with locks.hold(key):
            if inside:
                overlaps.append(True)
            inside.append(1)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert overlaps == []
    assert len(locks) == 0


def test_different_keys_do_not_block_each_other():
    locks = KeyedLocks()
    a = resource_day_key("r-1", date(2024, 1, 10))
    b = resource_day_key("r-2", date(2024, 1, 10))
    entered = threading.Event()

    def other():
        with locks.hold(b):
            entered.set()

    with locks.hold(a):
        th = threading.Thread(target=other)
        th.start()
        assert entered.wait(timeout=1)
        th.join()


def test_multi_key_hold_releases_everything():
    locks = KeyedLocks()
    day = date(2024, 1, 10)
    with locks.hold(user_day_key("u-1", day), resource_day_key("r-1", day)):
        assert len(locks) == 2
    assert len(locks) == 0
