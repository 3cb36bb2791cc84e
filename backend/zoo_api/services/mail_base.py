"""
Zoo API — Abstract Mail Service Interface
===========================================

What:  Contract for the outbound mail collaborator.
How:   Concrete implementations inherit from MailService and implement
       send() and health_check(). Callers only use the helpers defined
       here (send_quietly and the message builders), so the transport can
       be swapped without touching services or routes.
Who:   TicketService (purchase confirmation), AuthService (welcome mail).
When:  After the write that triggers the mail has been flushed.

Delivery contract:
    Mail is a side effect, never part of the business outcome. A failed
    send is logged at WARNING and dropped: no retry, no rollback, no error
    surfaced to the client.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional

from zoo_api.exceptions import CircuitBreakerOpenError, MailDeliveryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    body: str


@dataclass(frozen=True)
class TicketConfirmation:
    """Plain snapshot of an issued ticket, safe to use after the session closes."""

    visitor_email: str
    visitor_name: str
    ticket_id: str
    ticket_type: str
    visit_date: date
    final_price: float
    valid_until: Optional[date] = None


class MailService(ABC):
    """
    Abstract interface for outbound mail.

    Implementations:
        - SmtpMailService: SMTP relay with a circuit breaker (default)
    """

    @abstractmethod
    async def send(self, message: MailMessage) -> None:
        """
        Deliver one message.

        Raises:
            MailDeliveryError: The transport rejected or failed the message.
            CircuitBreakerOpenError: Too many recent failures; not attempted.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the transport is configured and not circuit-broken."""
        ...

    async def send_quietly(self, message: MailMessage) -> bool:
        """
        Fire-and-forget delivery: failures are logged and swallowed.

        Returns True when the message was handed to the transport.
        """
        try:
            await self.send(message)
            return True
        except CircuitBreakerOpenError as e:
            logger.warning(
                "Mail to %s skipped (circuit open, retry in %ss): %s",
                message.to, e.recovery_time, message.subject,
            )
        except MailDeliveryError as e:
            logger.warning(
                "Mail to %s failed: %s | Context: %s", message.to, e.message, e.context
            )
        return False

    async def send_ticket_confirmation(self, confirmation: TicketConfirmation) -> bool:
        return await self.send_quietly(build_ticket_confirmation(confirmation))

    async def send_welcome(self, email: str, name: str) -> bool:
        return await self.send_quietly(
            MailMessage(
                to=email,
                subject="Welcome to the Zoo",
                body=(
                    f"Hello {name},\n\n"
                    "Your account has been created. You can now buy tickets "
                    "and track your visits online.\n"
                ),
            )
        )


def build_ticket_confirmation(confirmation: TicketConfirmation) -> MailMessage:
    lines = [
        f"Hello {confirmation.visitor_name},",
        "",
        "Thank you for your purchase. Your ticket details:",
        f"  Ticket ID:  {confirmation.ticket_id}",
        f"  Type:       {confirmation.ticket_type}",
        f"  Visit date: {confirmation.visit_date.isoformat()}",
        f"  Price paid: {confirmation.final_price:.2f}",
    ]
    if confirmation.valid_until:
        lines.append(f"  Valid until: {confirmation.valid_until.isoformat()}")
    lines += ["", "Show this ticket ID at the entrance gate. Enjoy your visit!"]
    return MailMessage(
        to=confirmation.visitor_email,
        subject=f"Your zoo ticket {confirmation.ticket_id}",
        body="\n".join(lines) + "\n",
    )
