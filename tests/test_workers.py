import threading

from sitecrawler.workers import WorkerPool


def test_run_batch_waits_for_every_item():
    seen: list[int] = []
    lock = threading.Lock()

    def handle(item: int) -> None:
        with lock:
            seen.append(item)

    with WorkerPool(3, handle) as pool:
        pool.run_batch(range(10))
        assert sorted(seen) == list(range(10))

        pool.run_batch([10, 11])
        assert sorted(seen) == list(range(12))


def test_handler_errors_go_to_on_error_and_workers_survive():
    errors: list[tuple[int, str]] = []
    done: list[int] = []

    def handle(item: int) -> None:
        if item % 2:
            raise RuntimeError(f"bad {item}")
        done.append(item)

    with WorkerPool(1, handle, on_error=lambda item, exc: errors.append((item, str(exc)))) as pool:
        pool.run_batch([0, 1, 2, 3, 4])

    assert done == [0, 2, 4]
    assert errors == [(1, "bad 1"), (3, "bad 3")]


def test_concurrency_is_bounded_by_pool_size():
    active = 0
    peak = 0
    lock = threading.Lock()
    release = threading.Event()

    def handle(item: int) -> None:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        release.wait(0.05)
        with lock:
            active -= 1

    with WorkerPool(2, handle) as pool:
        pool.run_batch(range(8))

    assert 1 <= peak <= 2
