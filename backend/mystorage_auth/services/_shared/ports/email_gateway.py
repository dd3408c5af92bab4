from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True, slots=True)
class SendResult:
    """
    Delivery outcome reported by a gateway.

    :ivar success: ``True`` when the provider accepted the message.
    :ivar errors: Operator-facing failure details (never shown to clients).
    """

    success: bool
    errors: tuple[str, ...] = ()

    @classmethod
    def ok(cls) -> SendResult:
        return cls(success=True)

    @classmethod
    def failed(cls, *errors: str) -> SendResult:
        return cls(success=False, errors=tuple(errors))


class EmailGateway(Protocol):
    """Port for outbound transactional mail."""

    def send(self, to_address: str, subject: str, html_body: str) -> SendResult: ...


@dataclass(frozen=True, slots=True)
class SentEmail:
    to_address: str
    subject: str
    html_body: str


@dataclass
class RecordingEmailGateway(EmailGateway):
    """
    In-memory gateway that records every message.

    Set ``fail`` to make every send report a provider failure.
    """

    fail: bool = False
    outbox: list[SentEmail] = field(default_factory=list)

    def send(self, to_address: str, subject: str, html_body: str) -> SendResult:
        if self.fail:
            return SendResult.failed("recording gateway configured to fail")
        self.outbox.append(SentEmail(to_address, subject, html_body))
        return SendResult.ok()

    def last_to(self, to_address: str) -> SentEmail | None:
        """Most recent message sent to ``to_address``."""
        for message in reversed(self.outbox):
            if message.to_address == to_address:
                return message
        return None
