"""Decoding and enrichment of SQS message bodies."""
from .codecs import CODECS, Codec, get_codec
from .decorator import EventDecorator
from .enrichment import MessageEnricher, convert_epoch_to_timestamp

__all__ = ["CODECS", "Codec", "EventDecorator", "MessageEnricher", "convert_epoch_to_timestamp", "get_codec"]
