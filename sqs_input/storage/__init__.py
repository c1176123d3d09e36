"""Downstream sinks receiving decoded events."""
from .sinks import CallbackSink, EventSink, JsonLinesSink, QueueSink

__all__ = ["CallbackSink", "EventSink", "JsonLinesSink", "QueueSink"]
