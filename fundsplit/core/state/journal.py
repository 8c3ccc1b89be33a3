"""
Journal - atomic operation boundary for distribution state.

Conceptual Background:
---------------------
Every externally triggered operation (claim, batch claim, lifecycle call)
must either commit all of its state changes or none of them. Components
that own mutable state (distribution instances, the currency ledger, the
collectible registry) share one Journal:

1. ``atomic()`` takes the journal lock (single writer) and opens a unit
2. Each mutation records an undo action before it is applied
3. On any exception the undo actions recorded since the unit started are
   replayed newest-first and the exception propagates
4. When the outermost unit exits cleanly the undo log is dropped and
   after-commit hooks run (persistence)

Nested ``atomic()`` calls join the enclosing unit: a failing sub-claim
inside a batch rolls back to its savepoint and re-raises, and the batch
then rolls back everything else. Re-entrant calls from an external
collaborator run on the same thread, so the lock is re-entrant and they
observe already-updated local state.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List

from fundsplit.utils.logger import get_logger

logger = get_logger("journal")


UndoAction = Callable[[], None]


class Journal:
    """
    Undo log plus re-entrant lock shared by one set of stateful components.

    Attributes:
        depth: Current nesting level of atomic units (0 = idle)
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._undo: List[UndoAction] = []
        self._after_commit: List[Callable[[], None]] = []
        self.depth = 0

    @property
    def in_transaction(self) -> bool:
        return self.depth > 0

    @contextmanager
    def atomic(self) -> Iterator["Journal"]:
        """
        Run the enclosed block as one all-or-nothing unit.

        Raises:
            Whatever the enclosed block raised, after rolling back.
        """
        with self._lock:
            savepoint = len(self._undo)
            hooks_mark = len(self._after_commit)
            self.depth += 1
            try:
                yield self
            except BaseException:
                self._rollback_to(savepoint)
                del self._after_commit[hooks_mark:]
                self.depth -= 1
                if self.depth == 0:
                    self._undo.clear()
                    self._after_commit.clear()
                raise
            self.depth -= 1
            if self.depth == 0:
                self._commit()

    def record(self, undo: UndoAction) -> None:
        """
        Register an undo action for a mutation about to be applied.

        Outside an atomic unit there is nothing to roll back to, so the
        action is discarded.
        """
        if self.depth > 0:
            self._undo.append(undo)

    def after_commit(self, hook: Callable[[], None]) -> None:
        """Run ``hook`` once the outermost unit commits (immediately if idle)."""
        if self.depth > 0:
            self._after_commit.append(hook)
        else:
            hook()

    def _rollback_to(self, savepoint: int) -> None:
        undone = len(self._undo) - savepoint
        while len(self._undo) > savepoint:
            self._undo.pop()()
        if undone:
            logger.debug(f"Rolled back {undone} state change(s)")

    def _commit(self) -> None:
        self._undo.clear()
        hooks, self._after_commit = self._after_commit, []
        for hook in hooks:
            hook()
