"""Prop Prophet: player-prop pick scoring and history ledger."""

__version__ = "0.1.0"
