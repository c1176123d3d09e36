"""Polling loop and backoff policy."""
from .backoff import BackoffController
from .sqs_poller import PollerState, SQSPoller

__all__ = ["BackoffController", "PollerState", "SQSPoller"]
