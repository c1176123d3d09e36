"""SQS client for resolving, polling and acknowledging messages."""
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger
from .models import (
    MAX_MESSAGES_TO_FETCH,
    BackendError,
    ErrorKind,
    FetchBatch,
    FetchResult,
    FetchStats,
    RawMessage,
)

logger = get_logger(__name__)

MAX_WAIT_TIME_SECONDS = 20
READ_TIMEOUT_GRACE_SECONDS = 10

# Error codes that will not go away by retrying
FATAL_ERROR_CODES = frozenset({
    "InvalidClientTokenId",
    "UnrecognizedClientException",
    "SignatureDoesNotMatch",
    "AccessDenied",
    "AccessDeniedException",
    "InvalidSecurity",
    "AuthFailure",
    "OptInRequired",
})
FATAL_BOTOCORE_ERRORS = (NoCredentialsError, PartialCredentialsError)


def error_code(exc: BaseException) -> Optional[str]:
    """Extract the AWS error code from a ClientError, if any."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code") or None
    return None


def error_cause(exc: BaseException) -> Optional[str]:
    """Describe the underlying error of a networking failure, if any."""
    original = getattr(exc, "kwargs", {}).get("error") if isinstance(exc, BotoCoreError) else None
    original = original or exc.__cause__
    return repr(original) if original is not None else None


def classify_error(exc: BaseException) -> BackendError:
    """Classify a boto3 failure as transient (retry) or fatal (give up).

    Args:
        exc: Exception raised by a boto3 SQS call

    Returns:
        The classified error

    Raises:
        TypeError: If the exception does not come from botocore
    """
    if isinstance(exc, ClientError):
        code = error_code(exc)
        kind = ErrorKind.FATAL if code in FATAL_ERROR_CODES else ErrorKind.TRANSIENT
    elif isinstance(exc, FATAL_BOTOCORE_ERRORS):
        code = None
        kind = ErrorKind.FATAL
    elif isinstance(exc, BotoCoreError):
        code = None
        kind = ErrorKind.TRANSIENT
    else:
        raise TypeError(f"Not a botocore error: {exc!r}")

    return BackendError(
        kind=kind,
        error_class=type(exc).__name__,
        message=str(exc),
        code=code,
        cause=error_cause(exc),
        exception=exc,
    )


class SQSClient:
    """Client for interacting with a single AWS SQS queue."""

    def __init__(
        self,
        queue: str,
        queue_owner_aws_account_id: Optional[str] = None,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        sqs: Any = None
    ):
        """Initialize SQS client.

        Args:
            queue: Name of the queue (not the URL or ARN)
            queue_owner_aws_account_id: Account ID owning the queue, for cross-account access
            region: AWS region
            endpoint_url: Optional endpoint URL (for LocalStack)
            sqs: Optional pre-built boto3 SQS client
        """
        self.queue = queue
        self.queue_owner_aws_account_id = queue_owner_aws_account_id
        self.region = region
        self.queue_url: Optional[str] = None

        self._request_count = 0
        self._received_message_count = 0
        self._last_message_received_at: Optional[datetime] = None

        # A long poll must not block much past its wait time
        self.sqs = sqs or boto3.client(
            'sqs',
            region_name=region,
            endpoint_url=endpoint_url,
            config=Config(read_timeout=MAX_WAIT_TIME_SECONDS + READ_TIMEOUT_GRACE_SECONDS)
        )

        logger.info(
            "sqs_client_initialized",
            queue=queue,
            queue_owner_aws_account_id=queue_owner_aws_account_id,
            region=region,
            endpoint=endpoint_url or "AWS"
        )

    @property
    def stats(self) -> FetchStats:
        """Snapshot of the cumulative polling statistics."""
        return FetchStats(
            request_count=self._request_count,
            received_message_count=self._received_message_count,
            last_message_received_at=self._last_message_received_at,
        )

    def resolve_queue_url(self) -> str:
        """Look up the queue URL from its name.

        Returns:
            The queue URL

        Raises:
            ConfigurationError: If the queue cannot be resolved or the backend is unreachable
        """
        params = {'QueueName': self.queue}
        if self.queue_owner_aws_account_id:
            params['QueueOwnerAWSAccountId'] = self.queue_owner_aws_account_id

        try:
            response = self.sqs.get_queue_url(**params)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "cannot_establish_sqs_connection",
                queue=self.queue,
                exception=type(e).__name__,
                message=str(e),
                code=error_code(e)
            )
            raise ConfigurationError("Verify the SQS queue name and your credentials") from e

        self.queue_url = response['QueueUrl']
        logger.info("sqs_queue_resolved", queue=self.queue, queue_url=self.queue_url)
        return self.queue_url

    def fetch(
        self,
        max_messages: int = MAX_MESSAGES_TO_FETCH,
        attribute_names: Sequence[str] = (),
        wait_time_seconds: int = MAX_WAIT_TIME_SECONDS
    ) -> FetchResult:
        """Receive one batch of messages.

        Backend failures are classified and returned, never raised.

        Args:
            max_messages: Maximum number of messages to retrieve (1-10)
            attribute_names: Message system attributes to request
            wait_time_seconds: Long polling wait time (0-20)

        Returns:
            The batch, or the classified error
        """
        if not 1 <= max_messages <= MAX_MESSAGES_TO_FETCH:
            raise ValueError(f"max_messages must be between 1 and {MAX_MESSAGES_TO_FETCH}, got {max_messages}")
        if not 0 <= wait_time_seconds <= MAX_WAIT_TIME_SECONDS:
            raise ValueError(f"wait_time_seconds must be between 0 and {MAX_WAIT_TIME_SECONDS}, got {wait_time_seconds}")
        if self.queue_url is None:
            self.resolve_queue_url()

        self._request_count += 1
        try:
            response = self.sqs.receive_message(
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=max_messages,
                AttributeNames=list(attribute_names),
                WaitTimeSeconds=wait_time_seconds
            )
        except (ClientError, BotoCoreError) as e:
            return FetchResult.failed(classify_error(e))

        messages = tuple(RawMessage.from_sqs(m) for m in response.get('Messages', []))
        if messages:
            self._received_message_count += len(messages)
            self._last_message_received_at = datetime.now(timezone.utc)

        logger.debug(
            "sqs_messages_polled",
            message_count=len(messages),
            queue=self.queue
        )

        return FetchResult.ok(FetchBatch(messages=messages, stats=self.stats))

    def acknowledge(self, messages: Iterable[RawMessage]) -> List[str]:
        """Delete processed messages from the queue.

        Messages that fail to delete become visible again once their
        visibility timeout expires and are redelivered.

        Args:
            messages: Messages whose events were all emitted

        Returns:
            IDs of the messages that were deleted
        """
        pending = list(messages)
        deleted: List[str] = []

        for start in range(0, len(pending), MAX_MESSAGES_TO_FETCH):
            chunk = pending[start:start + MAX_MESSAGES_TO_FETCH]
            entries = [
                {'Id': str(i), 'ReceiptHandle': m.receipt_handle}
                for i, m in enumerate(chunk)
            ]
            try:
                response = self.sqs.delete_message_batch(QueueUrl=self.queue_url, Entries=entries)
            except (ClientError, BotoCoreError) as e:
                logger.warning(
                    "sqs_message_delete_failed",
                    queue=self.queue,
                    exception=type(e).__name__,
                    error=str(e),
                    count=len(chunk)
                )
                continue

            for entry in response.get('Successful', []):
                deleted.append(chunk[int(entry['Id'])].message_id)
            for entry in response.get('Failed', []):
                logger.warning(
                    "sqs_message_delete_failed",
                    queue=self.queue,
                    message_id=chunk[int(entry['Id'])].message_id,
                    code=entry.get('Code'),
                    error=entry.get('Message')
                )

        if deleted:
            logger.debug("sqs_messages_deleted", queue=self.queue, count=len(deleted))
        return deleted
