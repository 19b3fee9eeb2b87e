"""
Repositories backed by the relational sink.

- SQLAlchemyCheckpointStore: subscription checkpoints
"""

from eventfold.repositories.checkpoint import (
    Checkpoint,
    CheckpointStore,
    SQLAlchemyCheckpointStore,
)

__all__ = [
    "Checkpoint",
    "CheckpointStore",
    "SQLAlchemyCheckpointStore",
]
