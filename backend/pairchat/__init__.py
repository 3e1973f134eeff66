"""PairChat - anonymous one-to-one chat matchmaking service."""

__version__ = "1.0.0"
