# -------------------------------- driftlight/store.py --------------------------------

"""
LightStore owns the process's one Light and the lock that guards it.

The render loop takes the write lock for a whole tick; parameter updates take
it for a single assignment; status readers take the read lock.  Parsing and
validation always happen before the lock is taken, so a bad value never
holds up a tick and never leaves the Light half updated.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from .light import Light, Message
from .params import PARAMETERS, parse_byte, validate
from .rwlock import RWLock

logger = logging.getLogger(__name__)


class LightStore:
    def __init__(self, light: Light | None = None):
        self._light = light if light is not None else Light()
        self._lock = RWLock()

    @contextmanager
    def read(self) -> Iterator[Light]:
        with self._lock.read():
            yield self._light

    @contextmanager
    def write(self) -> Iterator[Light]:
        with self._lock.write():
            yield self._light

    def set_parameter(self, name: str, raw: str | bytes) -> bool:
        """
        Apply one parameter update from the control channel.

        Args:
            name: "lambda", "decay" or "rate"
            raw: the value as received, e.g. "128"

        Returns:
            True if the Light was updated, False if the name is not ours.

        Raises:
            ParameterError: the value is not a usable byte; nothing changed.
        """
        if name not in PARAMETERS:
            logger.info("ignoring unknown parameter %r", name)
            return False
        value = validate(name, parse_byte(raw))
        with self._lock.write():
            self._light.apply(name, value)
        return True

    def handle(self, message: Message) -> List[Message]:
        """
        Light.handle with the lock taken only around the assignment.

        Routing and parsing run first, unlocked; identity and topics never
        change, so they need no lock.
        """
        command = self._light.accepted_command(message)
        if command is None:
            return []
        with self._lock.write():
            self._light.apply(*command)
        return []

    def snapshot(self) -> Dict[str, Any]:
        with self._lock.read():
            light = self._light
            return {
                "name": light.identity(),
                "id": light.id,
                "segments": len(light.segments),
                **light.parameters(),
            }

    def config(self) -> Dict[str, Any]:
        with self._lock.read():
            return {
                "topic": self._light.config_topic(),
                "config": self._light.produce_config().to_dict(),
            }

    def state_messages(self) -> List[Message]:
        with self._lock.read():
            return self._light.snapshot_state()
