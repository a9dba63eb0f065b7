# -------------------------------- driftlight/light.py --------------------------------

"""
The Light fixture and the Device interface it implements.

A Device is anything the control plumbing can route messages to: it names
itself, describes its topics, turns an inbound message into state changes
(plus any outbound messages), and can report its current state.  Light is
the only device today; new fixture kinds implement Device and plug into the
same store, daemon and client without touching them.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Tuple

from .animation import Segment
from .constants import DEFAULT_DECAY, DEFAULT_ID, DEFAULT_LAMBDA, DEFAULT_NAME, DEFAULT_RATE, SEGMENTS
from .params import PARAMETERS, ParameterError, parse_byte, validate

logger = logging.getLogger(__name__)


@dataclass
class Message:
    topic: str
    payload: str | bytes

    def text(self) -> str:
        if isinstance(self.payload, (bytes, bytearray)):
            return bytes(self.payload).decode("utf-8", errors="replace")
        return self.payload


class Device(ABC):
    """Base class for all fixtures the daemon can drive."""

    @abstractmethod
    def produce_config(self) -> Any:
        """Topic routing metadata for this device."""

    @abstractmethod
    def config_topic(self) -> str:
        """Where the config would be announced."""

    @abstractmethod
    def identity(self) -> str:
        """Stable human readable identity."""

    @abstractmethod
    def handle(self, message: Message) -> List[Message]:
        """
        Apply an inbound message.
        Returns any outbound messages it produces.
        """

    @abstractmethod
    def snapshot_state(self) -> List[Message]:
        """Current state as outbound messages."""


@dataclass
class LightConfig:
    name: str

    command_topic: str
    state_topic: str

    rgb_command_topic: str
    rgb_state_topic: str

    brightness_command_topic: str
    brightness_state_topic: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _default_segments() -> List[Segment]:
    return [Segment() for _ in range(SEGMENTS)]


@dataclass(eq=False)
class Light(Device):
    """
    Animation state for the whole fixture.

    lambda_ drives how often particles spawn, decay how hard the pixel
    buffers are pulled back to the background each tick, and rate is the
    number of ticks per second.  All three are bytes; rate is never 0.

    Light itself does no locking; share it through a LightStore.
    """
    name: str = DEFAULT_NAME
    id: str = DEFAULT_ID

    lambda_: int = DEFAULT_LAMBDA
    decay: int = DEFAULT_DECAY
    rate: int = DEFAULT_RATE

    segments: List[Segment] = field(default_factory=_default_segments)

    # topics

    def command_topic(self) -> str:
        return f"home/{self.id}/switch/set"

    def state_topic(self) -> str:
        return f"home/{self.id}/switch/status"

    def rgb_command_topic(self) -> str:
        return f"home/{self.id}/rgb/set"

    def rgb_state_topic(self) -> str:
        return f"home/{self.id}/rgb/status"

    def brightness_command_topic(self) -> str:
        return f"home/{self.id}/brightness/set"

    def brightness_state_topic(self) -> str:
        return f"home/{self.id}/brightness/status"

    def parameter_command_topic(self, name: str) -> str:
        return f"home/{self.id}/{name}/set"

    def parameter_state_topic(self, name: str) -> str:
        return f"home/{self.id}/{name}/status"

    # parameters

    def get_parameter(self, name: str) -> int:
        if name not in PARAMETERS:
            raise KeyError(name)
        return getattr(self, "lambda_" if name == "lambda" else name)

    def set_parameter(self, name: str, value: int) -> None:
        if name not in PARAMETERS:
            raise KeyError(name)
        setattr(self, "lambda_" if name == "lambda" else name, value)

    def parameters(self) -> Dict[str, int]:
        return {name: self.get_parameter(name) for name in PARAMETERS}

    def route(self, message: Message) -> str | None:
        """Name of the parameter a command topic addresses, or None."""
        for name in PARAMETERS:
            if message.topic == self.parameter_command_topic(name):
                return name
        return None

    def parse_command(self, message: Message) -> Tuple[str, int] | None:
        """
        Work out what a message asks for without touching any state.

        Returns (parameter, value) for a parameter command, None for any
        other topic.  Raises ParameterError for a malformed value.
        """
        name = self.route(message)
        if name is None:
            if message.topic == self.command_topic():
                logger.info("switch command %r not supported, ignored", message.text())
            elif message.topic == self.rgb_command_topic():
                logger.info("rgb command %r not supported, ignored", message.text())
            elif message.topic == self.brightness_command_topic():
                logger.info("brightness command %r not supported, ignored", message.text())
            else:
                logger.debug("ignoring message on %s", message.topic)
            return None
        return name, validate(name, parse_byte(message.payload))

    # Device

    def produce_config(self) -> LightConfig:
        return LightConfig(
            name=self.name,

            command_topic=self.command_topic(),
            state_topic=self.state_topic(),

            rgb_command_topic=self.rgb_command_topic(),
            rgb_state_topic=self.rgb_state_topic(),

            brightness_command_topic=self.brightness_command_topic(),
            brightness_state_topic=self.brightness_state_topic(),
        )

    def config_topic(self) -> str:
        return f"homeassistant/light/{self.id}/config"

    def identity(self) -> str:
        return self.name

    def accepted_command(self, message: Message) -> Tuple[str, int] | None:
        """parse_command, with malformed values logged and dropped."""
        try:
            return self.parse_command(message)
        except ParameterError as e:
            logger.warning("dropping %s: %s", message.topic, e)
            return None

    def apply(self, name: str, value: int) -> None:
        # caller holds the write lock; value is already validated
        self.set_parameter(name, value)
        logger.info("%s set to %d", name, value)

    def handle(self, message: Message) -> List[Message]:
        command = self.accepted_command(message)
        if command is not None:
            self.apply(*command)
        return []

    def snapshot_state(self) -> List[Message]:
        return [Message(self.parameter_state_topic(name), str(value))
                for name, value in self.parameters().items()]
