"""Append-only conversation builder owned by a single request."""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from ailand.llm.models import Message


class Conversation:
    """
    Ordered message sequence for one orchestration call.

    Messages themselves are immutable; the only in-place edit allowed is
    ``replace_last``, used while a prompt is still being assembled (e.g. to
    turn the final user message into a multimodal one).
    """

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages: list[Message] = list(messages)

    def append(self, message: Message) -> Conversation:
        self._messages.append(message)
        return self

    def replace_last(self, message: Message) -> Conversation:
        if not self._messages:
            raise IndexError("Cannot replace the last message of an empty conversation")
        self._messages[-1] = message
        return self

    @property
    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def to_wire(self) -> list[dict[str, Any]]:
        return [message.to_wire() for message in self._messages]

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def __repr__(self) -> str:
        roles = ", ".join(message.role.value for message in self._messages)
        return f"Conversation([{roles}])"
