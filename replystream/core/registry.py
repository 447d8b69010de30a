"""Session registry: conversation_id -> cancellation controller of the turn in flight."""

from __future__ import annotations

import logging
import threading

from replystream.stream.cancellation import CancellationController

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Keyed store used by the turn runner and by unrelated "stop" triggers.

    An entry exists only while a turn is streaming; no entry means there is
    nothing to stop. Safe to use from several threads.
    """

    def __init__(self) -> None:
        self._controllers: dict[str, CancellationController] = {}
        self._lock = threading.Lock()

    def start(self, conversation_id: str, controller: CancellationController) -> None:
        with self._lock:
            previous = self._controllers.get(conversation_id)
            self._controllers[conversation_id] = controller
        if previous is not None and previous is not controller:
            logger.info(
                "replacing in-flight turn controller",
                extra={"conversation_id": conversation_id},
            )

    def get(self, conversation_id: str) -> CancellationController | None:
        with self._lock:
            return self._controllers.get(conversation_id)

    def is_active(self, conversation_id: str) -> bool:
        return self.get(conversation_id) is not None

    def stop(self, conversation_id: str) -> bool:
        """Cancel the turn in flight. False when there is none or it was already stopped."""
        controller = self.get(conversation_id)
        if controller is None:
            return False
        stopped = controller.cancel()
        if stopped:
            logger.info("turn stop requested", extra={"conversation_id": conversation_id})
        return stopped

    def clear(
        self, conversation_id: str, controller: CancellationController | None = None
    ) -> None:
        """Remove the entry. With ``controller``, only if it is still the registered one."""
        with self._lock:
            current = self._controllers.get(conversation_id)
            if current is None:
                return
            if controller is not None and current is not controller:
                return
            del self._controllers[conversation_id]

    def active_conversations(self) -> list[str]:
        with self._lock:
            return list(self._controllers)
