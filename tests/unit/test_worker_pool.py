import threading
import time

import pytest
from worker.worker_pool import WorkerPool, DEFAULT_KILL_TIMEOUT


def test_pool_requires_workers():
    with pytest.raises(ValueError):
        WorkerPool(size=0)


def test_pool_runs_all_tasks_before_stopping():
    pool = WorkerPool(size=4)
    pool.start()
    done = []
    lock = threading.Lock()

    def work(i):
        time.sleep(0.01)
        with lock:
            done.append(i)

    for i in range(10):
        pool.submit(work, i)

    assert pool.shutdown(grace_period=10) is True
    assert sorted(done) == list(range(10))


def test_pool_bounds_concurrency():
    pool = WorkerPool(size=2)
    pool.start()
    running = []
    peak = []
    lock = threading.Lock()

    def work():
        with lock:
            running.append(1)
            peak.append(len(running))
        time.sleep(0.05)
        with lock:
            running.pop()

    for _ in range(6):
        pool.submit(work)
    pool.shutdown(grace_period=10)

    assert max(peak) <= 2


def test_submit_never_blocks():
    pool = WorkerPool(size=1)
    pool.start()
    release = threading.Event()

    pool.submit(release.wait, 10)
    start = time.monotonic()
    for _ in range(50):
        pool.submit(lambda: None)
    assert time.monotonic() - start < 1

    release.set()
    assert pool.shutdown(grace_period=10)


def test_task_errors_do_not_kill_workers():
    pool = WorkerPool(size=1)
    pool.start()
    done = []

    def boom():
        raise RuntimeError("falla")

    pool.submit(boom)
    pool.submit(done.append, "ok")
    pool.shutdown(grace_period=10)

    assert done == ["ok"]


def test_closed_pool_rejects_tasks():
    pool = WorkerPool(size=1)
    pool.start()
    pool.shutdown(grace_period=5)

    assert pool.closed
    with pytest.raises(RuntimeError):
        pool.submit(print)


def test_shutdown_calls_on_timeout_for_stuck_workers():
    pool = WorkerPool(size=1)
    pool.start()
    release = threading.Event()
    interrupted = []

    def on_timeout():
        interrupted.append(True)
        release.set()

    pool.submit(release.wait, 30)

    assert pool.shutdown(grace_period=0.1, on_timeout=on_timeout, kill_timeout=10) is True
    assert interrupted == [True]


def test_shutdown_reports_workers_that_never_stop():
    pool = WorkerPool(size=1)
    pool.start()
    release = threading.Event()
    pool.submit(release.wait, 30)

    assert pool.shutdown(grace_period=0.05, kill_timeout=0.05) is False
    release.set()


def test_forced_wait_does_not_repeat_grace_period(monkeypatch):
    """Tras la interrupción la espera es `kill_timeout`, no otro periodo de gracia"""
    pool = WorkerPool(size=1)
    pool.start()
    release = threading.Event()
    pool.submit(release.wait, 30)

    waits = []
    real_join_until = pool._join_until

    def recording_join_until(deadline):
        waits.append(deadline - time.monotonic())
        return real_join_until(time.monotonic() + 0.05)

    monkeypatch.setattr(pool, "_join_until", recording_join_until)

    assert pool.shutdown(grace_period=600) is False
    release.set()

    assert len(waits) == 2
    assert waits[0] > DEFAULT_KILL_TIMEOUT
    assert waits[1] <= DEFAULT_KILL_TIMEOUT
