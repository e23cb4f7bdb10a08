# logbridge/inputs/base.py

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable, List, Tuple

from logbridge.errors import InputMisfireError


@dataclass
class RawMessage:
    """Bytes received by a transport, before decoding"""
    payload: bytes
    remote_address: Optional[Tuple[str, int]] = None
    input_id: Optional[str] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ConfigurationField:
    name: str
    human_name: str
    default: Any = None
    description: str = ''
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'human_name': self.human_name,
            'default': self.default,
            'description': self.description,
            'required': self.required
        }


@dataclass(frozen=True)
class InputDescriptor:
    name: str
    exclusive: bool = False
    link: str = ''


class InputStatus:
    """Lifecycle states for a message input"""
    INACTIVE = "INACTIVE"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
    FAILED = "FAILED"

    VALID_TRANSITIONS = {
        INACTIVE: [STARTING],
        STARTING: [RUNNING, FAILED],
        RUNNING: [STOPPING],
        STOPPING: [STOPPED],
        STOPPED: [],
        FAILED: []
    }

    @classmethod
    def is_valid_transition(cls, current: str, target: str) -> bool:
        return target in cls.VALID_TRANSITIONS.get(current, [])


class Codec(ABC):
    """Turns raw transport bytes into a message dict"""

    @abstractmethod
    def decode(self, raw: RawMessage) -> Optional[Dict[str, Any]]:
        """Return the decoded message or None when the payload is unusable"""
        pass

    @classmethod
    def requested_configuration(cls) -> List[ConfigurationField]:
        return []


class Transport(ABC):
    """Accepts raw byte streams and hands each frame to a callback"""

    @abstractmethod
    def launch(self, handler: Callable[[RawMessage], None]) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    def get_stats(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def requested_configuration(cls) -> List[ConfigurationField]:
        return []


class MessageInput:
    """
    A transport and a codec wired together under one input identity.

    Construction does no I/O. ``launch`` starts the transport once and
    every decoded message is inserted into the supplied buffer.
    """

    def __init__(self, transport: Transport, codec: Codec, descriptor: InputDescriptor,
                 configuration: Optional[Dict[str, Any]] = None, input_id: Optional[str] = None):
        self.id = input_id or str(uuid.uuid4())
        self.transport = transport
        self.codec = codec
        self.descriptor = descriptor
        self.configuration = dict(configuration or {})
        self.status = InputStatus.INACTIVE
        self.buffer = None
        self.messages_decoded = 0
        self.messages_failed = 0
        self._state_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self.logger = logging.getLogger(f'{self.__class__.__name__}-{self.id}')

    @property
    def name(self) -> str:
        return self.descriptor.name

    def _transition(self, target: str) -> None:
        if not InputStatus.is_valid_transition(self.status, target):
            raise InputMisfireError(
                f"Input {self.id} cannot move from {self.status} to {target}")
        self.status = target

    def launch(self, buffer) -> None:
        """Start accepting messages into ``buffer``"""
        with self._state_lock:
            self._transition(InputStatus.STARTING)
            self.buffer = buffer
            try:
                self.transport.launch(self.process_raw_message)
            except Exception as e:
                self.status = InputStatus.FAILED
                self.logger.error(f"Failed to launch {self.name}: {str(e)}")
                raise InputMisfireError(f"Could not launch input {self.id}: {str(e)}") from e
            self._transition(InputStatus.RUNNING)
        self.logger.info(f"Launched {self.name}")

    def stop(self) -> None:
        with self._state_lock:
            if self.status != InputStatus.RUNNING:
                return
            self._transition(InputStatus.STOPPING)
            try:
                self.transport.stop()
            finally:
                self._transition(InputStatus.STOPPED)
        self.logger.info(f"Stopped {self.name}")

    def process_raw_message(self, raw: RawMessage) -> None:
        raw.input_id = self.id
        try:
            message = self.codec.decode(raw)
        except Exception as e:
            self.logger.error(f"Codec failed on message from {raw.remote_address}: {str(e)}")
            message = None

        if message is None:
            with self._stats_lock:
                self.messages_failed += 1
            return

        message.setdefault('input_id', self.id)
        with self._stats_lock:
            self.messages_decoded += 1
        self.buffer.insert(message)

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            stats = {
                'id': self.id,
                'name': self.name,
                'status': self.status,
                'messages_decoded': self.messages_decoded,
                'messages_failed': self.messages_failed
            }
        stats['transport'] = self.transport.get_stats()
        return stats
