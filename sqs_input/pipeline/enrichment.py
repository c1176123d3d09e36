"""Turn raw SQS messages into enriched events."""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional, Union

from ..queue.models import SENT_TIMESTAMP, RawMessage
from ..utils.exceptions import DecodeError
from ..utils.logger import get_logger
from .codecs import Codec, JSONCodec

logger = get_logger(__name__)

Event = Dict[str, Any]


def convert_epoch_to_timestamp(epoch_ms: Union[str, int]) -> datetime:
    """Convert SQS epoch milliseconds to a UTC timestamp with second precision."""
    return datetime.fromtimestamp(int(epoch_ms) // 1000, tz=timezone.utc)


class MessageEnricher:
    """Decodes message bodies and tags the resulting events with SQS provenance."""

    def __init__(
        self,
        codec: Optional[Codec] = None,
        id_field: Optional[str] = None,
        md5_field: Optional[str] = None,
        sent_timestamp_field: Optional[str] = None,
        decorate: Optional[Callable[[Event], Event]] = None
    ):
        """Initialize the enricher.

        Args:
            codec: Codec used to decode message bodies (JSON by default)
            id_field: Event field receiving the SQS message ID
            md5_field: Event field receiving the MD5 of the message body
            sent_timestamp_field: Event field receiving the message's sent time
            decorate: Callable applied to every event after provenance is set
        """
        self.codec = codec or JSONCodec()
        self.id_field = id_field
        self.md5_field = md5_field
        self.sent_timestamp_field = sent_timestamp_field
        self.decorate = decorate

    def add_sqs_data(self, event: Event, message: RawMessage) -> Event:
        if self.id_field:
            event[self.id_field] = message.message_id
        if self.md5_field:
            event[self.md5_field] = message.md5_of_body
        if self.sent_timestamp_field:
            sent = message.attributes.get(SENT_TIMESTAMP)
            if sent is not None:
                try:
                    event[self.sent_timestamp_field] = convert_epoch_to_timestamp(sent)
                except (TypeError, ValueError, OverflowError, OSError) as e:
                    # Field is left out; the event itself is still valid
                    logger.warning(
                        "sqs_sent_timestamp_invalid",
                        message_id=message.message_id,
                        sent_timestamp=str(sent),
                        error=str(e)
                    )
        return event

    def enrich(self, message: RawMessage) -> Iterator[Event]:
        """Lazily yield the enriched events decoded from one message.

        Raises:
            DecodeError: If the body cannot be decoded
        """
        for event in self.codec.decode(message.body):
            event = self.add_sqs_data(event, message)
            if self.decorate is not None:
                event = self.decorate(event)
            yield event

    def process(self, message: RawMessage, sink) -> bool:
        """Emit every event of `message` to `sink`, in order.

        Args:
            message: Message to decode
            sink: Downstream sink exposing `emit(event)`

        Returns:
            True if the message was fully handled, False if its body failed to decode
        """
        emitted = 0
        try:
            for event in self.enrich(message):
                sink.emit(event)
                emitted += 1
        except DecodeError as e:
            logger.warning(
                "sqs_message_decode_failed",
                message_id=message.message_id,
                codec=self.codec.name,
                error=str(e),
                events_emitted=emitted
            )
            return False

        return True
