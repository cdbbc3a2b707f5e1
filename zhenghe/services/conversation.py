# zhenghe/services/conversation.py
from __future__ import annotations

import logging
import threading
import uuid
from typing import Iterable, Iterator, List, Optional

from zhenghe.services.types import ChatMessage

log = logging.getLogger("zhenghe.chat")


class ConversationHistory:
    """
    Ordered message history of one conversation.
    Insertion order is turn order; nothing is ever deduplicated or dropped
    except by clear(). Thread-safe via a single lock.
    """

    def __init__(self, messages: Optional[Iterable[ChatMessage]] = None) -> None:
        self.conversation_id = f"conv_{uuid.uuid4().hex[:12]}"
        self._messages: List[ChatMessage] = list(messages or [])
        self._lock = threading.Lock()

    def append(self, message: ChatMessage) -> int:
        """Append a message and return the new history length."""
        with self._lock:
            self._messages.append(message)
            return len(self._messages)

    def append_and_snapshot(self, message: ChatMessage) -> List[ChatMessage]:
        """
        Append a message and copy the resulting history in one step, so a
        concurrent turn cannot slip in between the two.
        """
        with self._lock:
            self._messages.append(message)
            return list(self._messages)

    def snapshot(self) -> List[ChatMessage]:
        # return a shallow copy to avoid external mutation
        with self._lock:
            return list(self._messages)

    def clear(self) -> None:
        with self._lock:
            removed = len(self._messages)
            self._messages.clear()
        log.debug("history cleared | removed=%d", removed, extra={"conversation_id": self.conversation_id})

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self.snapshot())
