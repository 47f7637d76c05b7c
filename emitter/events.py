"""Typed event payloads routed through the emitter by name."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class Event(BaseModel):
    """Base class for events published with ``Emitter.publish``.

    Subclasses are emitted under their class name unless they set
    ``__event_name__``. Instances are frozen so one payload can be handed to
    every listener.
    """

    model_config = ConfigDict(frozen=True)

    __event_name__: ClassVar[str | None] = None

    @classmethod
    def event_name(cls) -> str:
        return cls.__event_name__ or cls.__name__
