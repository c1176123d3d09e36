"""Sinks that decoded events are pushed into."""
import json
import queue
import sys
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO

from ..utils.logger import get_logger

logger = get_logger(__name__)


class EventSink(ABC):
    """Destination for structured events."""

    @abstractmethod
    def emit(self, event: Dict[str, Any]) -> None:
        """Accept one event. May block to apply backpressure."""

    def close(self) -> None:
        """Release any resources held by the sink."""


class QueueSink(EventSink):
    """Pushes events onto a thread-safe queue, blocking while it is full."""

    def __init__(self, target: Optional[queue.Queue] = None, maxsize: int = 0):
        self.queue = target if target is not None else queue.Queue(maxsize=maxsize)

    def emit(self, event: Dict[str, Any]) -> None:
        self.queue.put(event)


class CallbackSink(EventSink):
    """Hands every event to a callable."""

    def __init__(self, callback: Callable[[Dict[str, Any]], Any]):
        self.callback = callback

    def emit(self, event: Dict[str, Any]) -> None:
        self.callback(event)


class JsonLinesSink(EventSink):
    """Writes events as JSON lines to a file, or to stdout."""

    def __init__(self, path: Optional[str] = None, stream: Optional[TextIO] = None):
        """Initialize the sink.

        Args:
            path: File to append events to; parent directories are created
            stream: Stream to write to when no path is given (stdout by default)
        """
        self._lock = threading.Lock()
        self._owns_stream = path is not None

        if path is not None:
            filepath = Path(path)
            filepath.parent.mkdir(parents=True, exist_ok=True)
            self.stream = open(filepath, 'a', encoding='utf-8')
        else:
            self.stream = stream or sys.stdout

        self.count = 0
        logger.info(
            "json_lines_sink_initialized",
            destination=str(Path(path).absolute()) if path else "stdout"
        )

    def emit(self, event: Dict[str, Any]) -> None:
        line = json.dumps(event, default=_json_default, ensure_ascii=False)
        with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()
            self.count += 1

    def close(self) -> None:
        with self._lock:
            if self._owns_stream and not self.stream.closed:
                self.stream.close()
        logger.info("json_lines_sink_closed", events_written=self.count)


def _json_default(value: Any) -> Any:
    isoformat = getattr(value, "isoformat", None)
    if callable(isoformat):
        return isoformat()
    return str(value)
