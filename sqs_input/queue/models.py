"""Data types exchanged between the SQS client and the poller."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

SENT_TIMESTAMP = "SentTimestamp"
MAX_MESSAGES_TO_FETCH = 10  # Between 1-10 per the SQS API


@dataclass(frozen=True)
class RawMessage:
    """A single message as received from SQS."""

    message_id: str
    body: Union[str, bytes]
    md5_of_body: str
    attributes: Dict[str, str] = field(default_factory=dict)
    receipt_handle: str = ""

    @classmethod
    def from_sqs(cls, message: Dict[str, Any]) -> "RawMessage":
        """Build from a `receive_message` response entry."""
        return cls(
            message_id=message["MessageId"],
            body=message.get("Body", ""),
            md5_of_body=message.get("MD5OfBody", ""),
            attributes=dict(message.get("Attributes", {})),
            receipt_handle=message.get("ReceiptHandle", ""),
        )


@dataclass(frozen=True)
class FetchStats:
    """Cumulative polling statistics for one client."""

    request_count: int = 0
    received_message_count: int = 0
    last_message_received_at: Optional[datetime] = None


@dataclass(frozen=True)
class FetchBatch:
    """Messages returned by one `receive_message` call."""

    messages: Tuple[RawMessage, ...]
    stats: FetchStats

    def __post_init__(self):
        if len(self.messages) > MAX_MESSAGES_TO_FETCH:
            raise ValueError(
                f"A batch holds at most {MAX_MESSAGES_TO_FETCH} messages, got {len(self.messages)}"
            )

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):
        return iter(self.messages)


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class BackendError:
    """A classified failure reported by the SQS backend."""

    kind: ErrorKind
    error_class: str
    message: str
    code: Optional[str] = None
    cause: Optional[str] = None
    exception: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def is_transient(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT


class FetchStatus(str, Enum):
    OK = "ok"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a fetch: a batch, or a transient or fatal backend error."""

    status: FetchStatus
    batch: Optional[FetchBatch] = None
    error: Optional[BackendError] = None

    @classmethod
    def ok(cls, batch: FetchBatch) -> "FetchResult":
        return cls(status=FetchStatus.OK, batch=batch)

    @classmethod
    def failed(cls, error: BackendError) -> "FetchResult":
        status = FetchStatus.TRANSIENT if error.is_transient else FetchStatus.FATAL
        return cls(status=status, error=error)
