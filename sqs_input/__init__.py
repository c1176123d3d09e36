"""Drain an Amazon SQS queue into a stream of structured events."""

__version__ = "0.1.0"
