"""In-memory command queue."""

import threading
import uuid
from collections import deque

from src.automation.domain.exceptions import DispatchError
from src.automation.domain.models import CommandRequest
from src.automation.domain.protocols import CommandQueue


class InMemoryCommandQueue(CommandQueue):
    """FIFO of pending commands, for testing and embedded use."""

    def __init__(self, max_size: int | None = None):
        self.max_size = max_size
        self.commands: deque[tuple[str, CommandRequest]] = deque()
        self._lock = threading.Lock()

    def submit(self, request: CommandRequest) -> str:
        with self._lock:
            if self.max_size is not None and len(self.commands) >= self.max_size:
                raise DispatchError(f"Command queue full ({self.max_size} pending)", request.actuator_id)
            command_id = str(uuid.uuid4())
            self.commands.append((command_id, request))
        return command_id

    def drain(self) -> list[tuple[str, CommandRequest]]:
        """Remove and return every pending command in submission order."""
        with self._lock:
            drained = list(self.commands)
            self.commands.clear()
        return drained

    def pending(self) -> list[CommandRequest]:
        return [request for _, request in self.commands]

    def __len__(self):
        return len(self.commands)
