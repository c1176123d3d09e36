"""Codecs turning a message body into zero or more events."""
import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Type, Union

from ..utils.exceptions import ConfigurationError, DecodeError

TIMESTAMP_FIELD = "@timestamp"

Event = Dict[str, Any]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def new_event(fields: Dict[str, Any]) -> Event:
    """Create an event from decoded fields, stamping it if it has no timestamp."""
    event = dict(fields)
    event.setdefault(TIMESTAMP_FIELD, _now_iso())
    return event


def _to_text(data: Union[str, bytes]) -> str:
    if isinstance(data, bytes):
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Body is not valid UTF-8: {e}") from e
    return data


class Codec(ABC):
    """Decodes one message body into a finite sequence of events."""

    name: str = ""

    @abstractmethod
    def decode(self, data: Union[str, bytes]) -> Iterator[Event]:
        """Yield the events contained in `data`.

        Raises:
            DecodeError: If `data` is not valid for this codec
        """


class JSONCodec(Codec):
    """A JSON object is one event; a JSON array of objects is one event per element."""

    name = "json"

    def decode(self, data: Union[str, bytes]) -> Iterator[Event]:
        try:
            payload = json.loads(_to_text(data))
        except (ValueError, RecursionError) as e:
            raise DecodeError(f"Invalid JSON: {e}") from e

        if isinstance(payload, dict):
            yield new_event(payload)
        elif isinstance(payload, list):
            # Validate all elements before yielding any
            for item in payload:
                if not isinstance(item, dict):
                    raise DecodeError(f"JSON array elements must be objects, got {type(item).__name__}")
            for item in payload:
                yield new_event(item)
        else:
            raise DecodeError(f"JSON payload must be an object or array, got {type(payload).__name__}")


class JSONLinesCodec(Codec):
    """One JSON object per line. Blank lines are skipped.

    The body is parsed in full before the first event is yielded, so a bad
    line anywhere rejects the whole message.
    """

    name = "json_lines"

    def decode(self, data: Union[str, bytes]) -> Iterator[Event]:
        payloads = []
        for lineno, line in enumerate(_to_text(data).splitlines(), start=1):
            if not line.strip():
                continue
            try:
                payload = json.loads(line)
            except (ValueError, RecursionError) as e:
                raise DecodeError(f"Invalid JSON on line {lineno}: {e}") from e
            if not isinstance(payload, dict):
                raise DecodeError(f"Line {lineno} is not a JSON object")
            payloads.append(payload)

        for payload in payloads:
            yield new_event(payload)


class PlainCodec(Codec):
    """The whole body becomes the `message` field of a single event."""

    name = "plain"

    def decode(self, data: Union[str, bytes]) -> Iterator[Event]:
        yield new_event({"message": _to_text(data)})


class LineCodec(Codec):
    """Each non-blank line becomes the `message` field of its own event."""

    name = "line"

    def decode(self, data: Union[str, bytes]) -> Iterator[Event]:
        for line in _to_text(data).splitlines():
            if line.strip():
                yield new_event({"message": line})


CODECS: Dict[str, Type[Codec]] = {
    codec.name: codec for codec in (JSONCodec, JSONLinesCodec, PlainCodec, LineCodec)
}


def get_codec(name: str) -> Codec:
    """Instantiate the codec registered under `name`.

    Raises:
        ConfigurationError: If no codec has that name
    """
    try:
        return CODECS[name.strip().lower()]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown codec '{name}'. Available: {', '.join(sorted(CODECS))}"
        ) from None
