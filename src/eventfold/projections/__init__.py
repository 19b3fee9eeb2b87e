"""
Helpers for writing replay-safe projection handlers.
"""

from eventfold.projections.fence import advance_revision, insert_if_absent

__all__ = [
    "advance_revision",
    "insert_if_absent",
]
