#!/usr/bin/env python3
"""
SQS Input - drain an SQS queue into JSON-lines events.
Handles: SQS → Decode → Provenance fields → Decorate → Sink → Delete
"""
import signal
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

from pydantic import ValidationError

from .pipeline.codecs import get_codec
from .pipeline.decorator import EventDecorator
from .pipeline.enrichment import MessageEnricher
from .polling.sqs_poller import SQSPoller
from .queue.sqs_client import SQSClient
from .storage.sinks import EventSink, JsonLinesSink
from .utils.config import Settings, get_settings
from .utils.exceptions import ConfigurationError
from .utils.logger import get_logger, print_banner, setup_logging

logger = get_logger(__name__)


class SQSInput:
    """
    Runs one or more pollers against the same queue, all feeding one sink.

    Each poller gets its own SQS client and backoff state; the sink is
    shared and must be thread-safe.
    """

    def __init__(self, settings: Settings, sink: Optional[EventSink] = None):
        """Build the pollers from settings.

        Raises:
            ConfigurationError: If the codec is unknown
        """
        self.settings = settings
        get_codec(settings.codec)  # fail before opening the sink
        self.sink = sink or JsonLinesSink(path=settings.output_path)
        self.pollers: List[SQSPoller] = [
            self._build_poller(i) for i in range(settings.consumer_threads)
        ]

        print_banner("SQS INPUT STARTED", {
            "queue": settings.sqs_queue,
            "queue_owner": settings.sqs_queue_owner_aws_account_id or "Same account",
            "environment": "LocalStack (Dev)" if settings.is_local_environment else "AWS (Production)",
            "codec": settings.codec,
            "polling_frequency": f"{settings.polling_frequency}s",
            "consumer_threads": settings.consumer_threads,
            "output": settings.output_path or "stdout",
        }, log_format=settings.log_format)

    def _build_poller(self, index: int) -> SQSPoller:
        settings = self.settings
        client = SQSClient(
            queue=settings.sqs_queue,
            queue_owner_aws_account_id=settings.sqs_queue_owner_aws_account_id,
            region=settings.aws_region,
            endpoint_url=settings.aws_endpoint_url
        )
        enricher = MessageEnricher(
            codec=get_codec(settings.codec),
            id_field=settings.id_field,
            md5_field=settings.md5_field,
            sent_timestamp_field=settings.sent_timestamp_field,
            decorate=EventDecorator(
                event_type=settings.event_type,
                tags=settings.tags,
                add_field=settings.add_field
            )
        )
        return SQSPoller(
            client=client,
            enricher=enricher,
            sink=self.sink,
            polling_frequency=settings.polling_frequency,
            delete_messages=settings.delete_messages,
            name=f"sqs-poller-{index}"
        )

    def stop(self) -> None:
        for poller in self.pollers:
            poller.stop()

    def run(self) -> None:
        """Register every poller, then poll until stopped.

        Raises:
            ConfigurationError: If any poller cannot reach its queue
        """
        try:
            for poller in self.pollers:
                poller.register()

            with ThreadPoolExecutor(max_workers=len(self.pollers), thread_name_prefix="sqs-poller") as executor:
                futures = {executor.submit(poller.run): poller for poller in self.pollers}
                for future in as_completed(futures):
                    try:
                        future.result()
                    except Exception:
                        # One failed poller takes the others down with it
                        self.stop()
                        raise
        finally:
            self.sink.close()

    def install_signal_handlers(self) -> None:
        def _handle_stop(signum, frame):
            logger.info("received_signal_stopping", signal=signum)
            self.stop()

        signal.signal(signal.SIGINT, _handle_stop)
        signal.signal(signal.SIGTERM, _handle_stop)


def main():
    """
    Main entry point. Polls until SIGINT/SIGTERM.

    Configuration is provided via environment variables (or a .env file).

    Usage:
        python -m sqs_input.main
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"\n❌ Invalid configuration: {e}\n", file=sys.stderr)
        print("At minimum set SQS_QUEUE=<queue-name>", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.log_level, settings.log_format)

    try:
        sqs_input = SQSInput(settings)
        sqs_input.install_signal_handlers()
        sqs_input.run()
    except ConfigurationError as e:
        logger.error("sqs_input_configuration_error", error=str(e))
        sys.exit(1)
    except Exception as e:
        logger.error("unexpected_error_in_main_loop", error=str(e), exc_info=True)
        sys.exit(1)

    logger.info("sqs_input_shutdown_complete")


if __name__ == "__main__":
    main()
