import threading
import time

import pytest

from kine.drivers.nats.sequence import SequenceTracker


def test_starts_at_zero():
    tracker = SequenceTracker()
    assert tracker.last() == 0
    assert tracker.ready is False


def test_advance_records_sequence():
    tracker = SequenceTracker()
    tracker.advance(7)
    assert tracker.last() == 7
    tracker.advance(9)
    assert tracker.last() == 9


def test_wait_returns_when_already_applied():
    tracker = SequenceTracker()
    tracker.advance(5)
    start = time.monotonic()
    tracker.wait_for_sequence(3, timeout=5.0)
    tracker.wait_for_sequence(5, timeout=5.0)
    assert time.monotonic() - start < 1.0
    assert tracker.last() == 5
    with pytest.raises(TimeoutError):
        tracker.wait_for_sequence(6, timeout=0.01)


def test_wait_woken_by_advance():
    tracker = SequenceTracker()

    def writer():
        time.sleep(0.05)
        tracker.advance(1)
        time.sleep(0.05)
        tracker.advance(2)

    thread = threading.Thread(target=writer)
    thread.start()
    tracker.wait_for_sequence(2, timeout=5.0)
    thread.join()
    assert tracker.last() >= 2


def test_wait_times_out():
    tracker = SequenceTracker()
    tracker.advance(1)
    with pytest.raises(TimeoutError, match="sequence 4"):
        tracker.wait_for_sequence(4, timeout=0.05)


def test_wait_ready_after_mark():
    tracker = SequenceTracker()
    tracker.mark_ready()
    tracker.mark_ready()
    tracker.wait_ready(timeout=0.1)
    assert tracker.ready is True


def test_wait_ready_from_other_thread():
    tracker = SequenceTracker()
    timer = threading.Timer(0.05, tracker.mark_ready)
    timer.start()
    tracker.wait_ready(timeout=5.0)
    timer.join()
    assert tracker.ready is True


def test_wait_ready_times_out():
    tracker = SequenceTracker()
    with pytest.raises(TimeoutError, match="ready"):
        tracker.wait_ready(timeout=0.05)