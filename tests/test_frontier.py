import threading

from image_crawler.frontier import DiscoverStatus, Frontier
from image_crawler.types import TargetState


def _frontier(**kwargs):
    kwargs.setdefault("base_host", "example.com")
    kwargs.setdefault("max_depth", 2)
    return Frontier(**kwargs)


def test_discover_enqueues_normalized_target():
    frontier = _frontier()

    result = frontier.discover("HTTPS://www.Example.com/a/#x", 1, referrer="https://example.com/")

    assert result.accepted
    assert result.normalized_url == "https://example.com/a"
    assert result.target.depth == 1
    assert result.target.referrer == "https://example.com/"
    assert frontier.state_of("https://example.com/a") == TargetState.PENDING


def test_discover_classifies_rejections():
    frontier = _frontier(max_depth=1)

    assert frontier.discover("javascript:void(0)", 1).status == DiscoverStatus.SKIPPED_INVALID_URL
    assert frontier.discover("https://example.com/deep", 2).status == DiscoverStatus.SKIPPED_DEPTH
    assert frontier.discover("https://other.org/", 1).status == DiscoverStatus.SKIPPED_OUT_OF_SCOPE
    assert frontier.discover("https://sub.example.com/", 1).accepted
    assert frontier.discover("https://sub.example.com", 1).status == DiscoverStatus.SKIPPED_SEEN


def test_depth_discards_are_not_memoized():
    frontier = _frontier(max_depth=1)

    assert frontier.discover("https://example.com/x", 2).status == DiscoverStatus.SKIPPED_DEPTH
    assert frontier.discover("https://example.com/x", 1).accepted


def test_pop_is_fifo_and_moves_target_in_flight():
    frontier = _frontier()
    for path in ("a", "b", "c"):
        frontier.discover(f"https://example.com/{path}", 1)

    first = frontier.pop_next()

    assert first.url == "https://example.com/a"
    assert frontier.state_of(first.url) == TargetState.IN_FLIGHT
    assert frontier.discover("https://example.com/a", 1).status == DiscoverStatus.SKIPPED_SEEN
    assert [frontier.pop_next().url for _ in range(2)] == [
        "https://example.com/b",
        "https://example.com/c",
    ]
    assert frontier.pop_next() is None


def test_visited_keeps_first_depth_and_blocks_rediscovery():
    frontier = _frontier()
    frontier.discover("https://example.com/", 0)
    target = frontier.pop_next()

    assert frontier.mark_visited(target.url, target.depth) is True
    assert frontier.mark_visited(target.url, 2) is False
    assert frontier.visited() == {"https://example.com/": 0}
    assert frontier.discover("https://www.example.com", 1).status == DiscoverStatus.SKIPPED_VISITED
    assert frontier.exhausted()


def test_failed_targets_are_terminal():
    frontier = _frontier()
    frontier.discover("https://example.com/gone", 1)
    target = frontier.pop_next()

    frontier.mark_failed(target.url, target.depth)

    assert frontier.state_of(target.url) == TargetState.FAILED
    assert not frontier.is_visited(target.url)
    assert frontier.failed() == {"https://example.com/gone": 1}
    assert frontier.discover(target.url, 1).status == DiscoverStatus.SKIPPED_SEEN


def test_budget_caps_accepted_targets():
    frontier = _frontier(max_pages=2)

    assert frontier.discover("https://example.com/1", 1).accepted
    assert frontier.discover("https://example.com/2", 1).accepted
    assert frontier.discover("https://example.com/3", 1).status == DiscoverStatus.SKIPPED_BUDGET


def test_close_rejects_new_work_and_stops_pops():
    frontier = _frontier()
    frontier.discover("https://example.com/a", 1)

    frontier.close()

    assert frontier.closed
    assert frontier.discover("https://example.com/b", 1).status == DiscoverStatus.SKIPPED_CLOSED
    assert frontier.pop_next() is None
    assert frontier.pop_next(block=True, timeout=0.1) is None


def test_blocking_pop_waits_for_in_flight_discoveries():
    frontier = _frontier()
    frontier.discover("https://example.com/", 0)
    parent = frontier.pop_next()
    popped = []

    def worker():
        popped.append(frontier.pop_next(block=True, timeout=5))

    thread = threading.Thread(target=worker)
    thread.start()

    frontier.discover("https://example.com/child", 1)
    frontier.mark_visited(parent.url, parent.depth)
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert popped[0].url == "https://example.com/child"


def test_blocking_pop_returns_none_when_exhausted():
    frontier = _frontier()
    assert frontier.pop_next(block=True, timeout=5) is None


def test_concurrent_discovery_enqueues_each_url_once():
    frontier = _frontier(max_depth=1)
    results = []
    lock = threading.Lock()

    def worker():
        for i in range(50):
            result = frontier.discover(f"https://example.com/page/{i}", 1)
            with lock:
                results.append(result.accepted)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(results) == 50
    assert frontier.pending_count() == 50


def test_snapshot_counts():
    frontier = _frontier()
    frontier.discover("https://example.com/", 0)
    frontier.discover("https://example.com/a", 1)
    target = frontier.pop_next()
    frontier.mark_visited(target.url, target.depth)

    assert frontier.snapshot() == {
        "closed": False,
        "pending": 1,
        "in_flight": 0,
        "visited": 1,
        "failed": 0,
        "accepted": 2,
        "popped": 1,
    }
