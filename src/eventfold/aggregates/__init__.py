"""
Aggregate command handling.

- StreamAggregator: fold a stream into state
- CommandHandler: fold, decide and append under an expected revision
"""

from eventfold.aggregates.aggregator import AggregateResult, Evolve, StreamAggregator
from eventfold.aggregates.command_handler import CommandHandler, CommandResult, Decision

__all__ = [
    "AggregateResult",
    "Evolve",
    "StreamAggregator",
    "CommandHandler",
    "CommandResult",
    "Decision",
]
