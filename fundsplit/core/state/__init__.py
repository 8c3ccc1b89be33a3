"""Atomic state journal"""
from fundsplit.core.state.journal import Journal, UndoAction

__all__ = [
    "Journal",
    "UndoAction",
]
