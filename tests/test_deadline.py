"""Tests for the invocation deadline."""

import threading

import pytest

from bbpublish.deadline import Deadline
from bbpublish.exceptions import Cancelled


def test_unbounded_deadline_never_expires() -> None:
    deadline = Deadline()

    assert deadline.remaining() is None
    assert deadline.timeout_for(30.0) == 30.0
    deadline.check("anything")


def test_timeout_is_clamped_to_remaining() -> None:
    deadline = Deadline(seconds=10)

    assert deadline.timeout_for(30.0) <= 10
    assert deadline.timeout_for(None) <= 10


def test_expired_deadline_raises_cancelled() -> None:
    deadline = Deadline(seconds=0)

    with pytest.raises(Cancelled, match="Deadline exceeded before push"):
        deadline.check("push")


def test_shared_cancel_event() -> None:
    event = threading.Event()
    deadline = Deadline(seconds=60, cancel_event=event)

    event.set()

    assert deadline.cancelled
    with pytest.raises(Cancelled) as exc_info:
        deadline.check("clone")
    assert exc_info.value.code == "CANCELLED"
