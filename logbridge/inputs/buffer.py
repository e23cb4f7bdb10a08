# logbridge/inputs/buffer.py

import queue
from typing import Optional, Dict, Any, List


class InputBuffer:
    """Thread-safe hand-off between transports and message consumers"""

    def __init__(self, max_size: int = 0):
        self._queue = queue.Queue(maxsize=max_size)

    def insert(self, message: Dict[str, Any]) -> None:
        self._queue.put(message)

    def get(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[Dict[str, Any]]:
        messages = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                return messages

    def __len__(self) -> int:
        return self._queue.qsize()
