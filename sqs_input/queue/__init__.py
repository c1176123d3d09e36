"""SQS queue access."""
from .models import BackendError, ErrorKind, FetchBatch, FetchResult, FetchStats, FetchStatus, RawMessage
from .sqs_client import SQSClient, classify_error

__all__ = [
    "BackendError",
    "ErrorKind",
    "FetchBatch",
    "FetchResult",
    "FetchStats",
    "FetchStatus",
    "RawMessage",
    "SQSClient",
    "classify_error",
]
