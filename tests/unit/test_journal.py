"""
Unit tests for the journal (atomic operation boundary).

Tests cover:
1. Rollback on failure
2. Nested units and savepoints
3. After-commit hooks
"""

import threading

import pytest

from fundsplit.core.state import Journal


class Box:
    """Journaled value holder."""

    def __init__(self, journal, value=0):
        self.journal = journal
        self.value = value

    def set(self, value):
        previous = self.value
        self.journal.record(lambda: setattr(self, "value", previous))
        self.value = value


@pytest.fixture
def journal():
    return Journal()


class TestAtomic:
    """Tests for all-or-nothing units."""

    def test_commit_keeps_changes(self, journal):
        box = Box(journal)
        with journal.atomic():
            box.set(1)
            box.set(2)

        assert box.value == 2
        assert journal.depth == 0

    def test_failure_rolls_back_all_changes(self, journal):
        box = Box(journal)
        with pytest.raises(RuntimeError):
            with journal.atomic():
                box.set(1)
                box.set(2)
                raise RuntimeError("boom")

        assert box.value == 0
        assert not journal.in_transaction

    def test_inner_failure_caught_by_outer(self, journal):
        """A caught inner failure undoes only the inner unit."""
        a, b = Box(journal), Box(journal)
        with journal.atomic():
            a.set(1)
            try:
                with journal.atomic():
                    b.set(2)
                    raise ValueError("inner")
            except ValueError:
                pass
            assert b.value == 0

        assert a.value == 1
        assert b.value == 0

    def test_outer_failure_undoes_completed_inner(self, journal):
        box = Box(journal)
        with pytest.raises(KeyError):
            with journal.atomic():
                with journal.atomic():
                    box.set(5)
                assert box.value == 5
                raise KeyError("outer")

        assert box.value == 0

    def test_record_outside_unit_is_discarded(self, journal):
        box = Box(journal)
        box.set(3)

        with pytest.raises(RuntimeError):
            with journal.atomic():
                raise RuntimeError

        assert box.value == 3

    def test_units_are_serialized(self, journal):
        """A second thread waits for the running unit to finish."""
        box = Box(journal)
        entered = threading.Event()
        release = threading.Event()

        def writer():
            with journal.atomic():
                entered.set()
                release.wait(timeout=5)
                box.set(1)

        t = threading.Thread(target=writer)
        t.start()
        entered.wait(timeout=5)

        results = []

        def reader():
            with journal.atomic():
                results.append(box.value)

        r = threading.Thread(target=reader)
        r.start()
        release.set()
        t.join(timeout=5)
        r.join(timeout=5)

        assert results == [1]


class TestAfterCommit:
    """Tests for after-commit hooks."""

    def test_runs_on_outermost_commit(self, journal):
        calls = []
        with journal.atomic():
            with journal.atomic():
                journal.after_commit(lambda: calls.append("inner"))
            assert calls == []
        assert calls == ["inner"]

    def test_dropped_on_failure(self, journal):
        calls = []
        with pytest.raises(RuntimeError):
            with journal.atomic():
                journal.after_commit(lambda: calls.append("x"))
                raise RuntimeError

        assert calls == []

    def test_inner_failure_drops_only_inner_hooks(self, journal):
        calls = []
        with journal.atomic():
            journal.after_commit(lambda: calls.append("outer"))
            try:
                with journal.atomic():
                    journal.after_commit(lambda: calls.append("inner"))
                    raise ValueError
            except ValueError:
                pass

        assert calls == ["outer"]

    def test_runs_immediately_when_idle(self, journal):
        calls = []
        journal.after_commit(lambda: calls.append(1))
        assert calls == [1]
