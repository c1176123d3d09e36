"""Long-running poll loop draining an SQS queue into a sink."""
import threading
import traceback
from enum import Enum
from typing import Any, Dict, List, Optional

from ..pipeline.enrichment import MessageEnricher
from ..queue.models import MAX_MESSAGES_TO_FETCH, SENT_TIMESTAMP, BackendError, FetchBatch, FetchStatus, RawMessage
from ..queue.sqs_client import MAX_WAIT_TIME_SECONDS
from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger, is_debug_enabled
from .backoff import BackoffController

logger = get_logger(__name__)

SQS_ATTRIBUTES = [SENT_TIMESTAMP]
DEFAULT_POLLING_FREQUENCY = MAX_WAIT_TIME_SECONDS


class PollerState(str, Enum):
    RUNNING = "running"
    FETCHING = "fetching"
    PROCESSING = "processing"
    STOPPING = "stopping"
    STOPPED = "stopped"


class SQSPoller:
    """Fetches batches from SQS, decodes each message and emits its events.

    Transient backend errors are retried forever with exponential backoff.
    Fatal ones raise `ConfigurationError`. `stop()` may be called from any
    thread; it is honored before the next fetch, after the message being
    processed, or during a backoff wait.
    """

    def __init__(
        self,
        client,
        enricher: MessageEnricher,
        sink,
        polling_frequency: int = DEFAULT_POLLING_FREQUENCY,
        backoff: Optional[BackoffController] = None,
        delete_messages: bool = True,
        name: str = "sqs-poller"
    ):
        """Initialize the poller.

        Args:
            client: Queue client exposing `resolve_queue_url`, `fetch` and `acknowledge`
            enricher: Turns each message into events
            sink: Downstream sink exposing `emit(event)`
            polling_frequency: Long polling wait time in seconds
            backoff: Backoff policy for transient failures
            delete_messages: Whether handled messages are deleted from the queue
            name: Identifies this poller in logs
        """
        self.client = client
        self.enricher = enricher
        self.sink = sink
        self.polling_frequency = polling_frequency
        self.delete_messages = delete_messages
        self.name = name

        self._backoff = backoff or BackoffController()
        self._stop_event = threading.Event()
        self._state = PollerState.RUNNING
        self._registered = False

        self.messages_processed = 0
        self.messages_failed = 0

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    @property
    def consecutive_failures(self) -> int:
        return self._backoff.consecutive_failures

    @property
    def queue(self) -> str:
        return getattr(self.client, "queue", "unknown")

    def stop(self) -> None:
        """Ask the poll loop to finish. Safe to call from any thread, any number of times."""
        if not self._stop_event.is_set():
            logger.info("sqs_poller_stop_requested", poller=self.name, queue=self.queue)
        self._stop_event.set()

    def polling_options(self) -> Dict[str, Any]:
        return {
            "max_messages": MAX_MESSAGES_TO_FETCH,
            "attribute_names": SQS_ATTRIBUTES,
            "wait_time_seconds": self.polling_frequency,
        }

    def register(self) -> None:
        """Resolve the queue before polling starts.

        Raises:
            ConfigurationError: If the queue cannot be reached
        """
        logger.info("registering_sqs_input", poller=self.name, queue=self.queue)
        self.client.resolve_queue_url()
        self._registered = True

    def run(self) -> None:
        """Poll until `stop()` is called.

        Raises:
            ConfigurationError: On a fatal backend error; never retried
        """
        if not self._registered:
            self.register()

        options = self.polling_options()
        logger.debug("polling_sqs_queue", poller=self.name, queue=self.queue, polling_options=options)

        while not self._stop_event.is_set():
            self._state = PollerState.FETCHING
            result = self.client.fetch(**options)

            if result.status is FetchStatus.OK:
                self._backoff.on_success()
                self._state = PollerState.PROCESSING
                self._handle_batch(result.batch)
                self._state = PollerState.RUNNING

            elif result.status is FetchStatus.TRANSIENT:
                self._state = PollerState.RUNNING
                sleep_time = self._backoff.on_failure()
                logger.warning(
                    "sqs_error_retrying_with_backoff",
                    **self.exception_details(result.error, sleep_time)
                )
                # Returns early if stop() is called while waiting
                self._stop_event.wait(sleep_time)

            else:
                self._state = PollerState.STOPPING
                logger.error("sqs_fatal_error", **self.exception_details(result.error))
                self._state = PollerState.STOPPED
                raise ConfigurationError(
                    "Verify the SQS queue name and your credentials"
                ) from result.error.exception

        self._state = PollerState.STOPPING
        logger.info(
            "sqs_poller_stopped",
            poller=self.name,
            queue=self.queue,
            messages_processed=self.messages_processed,
            messages_failed=self.messages_failed
        )
        self._state = PollerState.STOPPED

    def _handle_batch(self, batch: FetchBatch) -> None:
        handled: List[RawMessage] = []

        for message in batch:
            if self.enricher.process(message, self.sink):
                handled.append(message)
                self.messages_processed += 1
            else:
                self.messages_failed += 1
            if self._stop_event.is_set():
                break

        # Unhandled and unprocessed messages are left for redelivery
        if handled and self.delete_messages:
            self.client.acknowledge(handled)

        stats = batch.stats
        logger.debug(
            "sqs_stats",
            poller=self.name,
            request_count=stats.request_count,
            received_message_count=stats.received_message_count,
            last_message_received_at=stats.last_message_received_at
        )

    def exception_details(self, error: BackendError, sleep_time: Optional[float] = None) -> Dict[str, Any]:
        """Build the diagnostic context logged for a backend error."""
        details: Dict[str, Any] = {
            "queue": self.queue,
            "exception": error.error_class,
            "message": error.message,
        }
        if error.code:
            details["code"] = error.code
        if error.cause:
            details["cause"] = error.cause
        if sleep_time is not None:
            details["sleep_time"] = sleep_time
        if error.exception is not None and is_debug_enabled(__name__):
            exc = error.exception
            details["backtrace"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return details
