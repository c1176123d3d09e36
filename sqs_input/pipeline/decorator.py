"""Metadata applied to every event regardless of its source message."""
from typing import Any, Dict, Iterable, List, Optional

TAGS_FIELD = "tags"
TYPE_FIELD = "type"


class EventDecorator:
    """Adds the configured `type`, `tags` and extra fields to events."""

    def __init__(
        self,
        event_type: Optional[str] = None,
        tags: Iterable[str] = (),
        add_field: Optional[Dict[str, Any]] = None
    ):
        self.event_type = event_type
        self.tags: List[str] = list(tags)
        self.add_field: Dict[str, Any] = dict(add_field or {})

    def __call__(self, event: Dict[str, Any]) -> Dict[str, Any]:
        return self.decorate(event)

    def decorate(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Decorate `event` in place and return it.

        An event that already carries a `type` keeps it. Added fields that
        collide with an existing value turn that field into a list.
        """
        if self.event_type and TYPE_FIELD not in event:
            event[TYPE_FIELD] = self.event_type

        for name, value in self.add_field.items():
            if name not in event:
                event[name] = value
            elif isinstance(event[name], list):
                event[name].append(value)
            else:
                event[name] = [event[name], value]

        if self.tags:
            existing = event.get(TAGS_FIELD)
            if existing is None:
                existing = []
            elif not isinstance(existing, list):
                existing = [existing]
            event[TAGS_FIELD] = existing + [t for t in self.tags if t not in existing]

        return event
