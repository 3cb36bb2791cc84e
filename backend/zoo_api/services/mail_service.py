"""
Zoo API — SMTP Mail Service Implementation
============================================

What:  Concrete MailService that relays messages through an SMTP server.
How:   smtplib runs in a worker thread (asyncio.to_thread) so a slow relay
       never blocks the event loop. A circuit breaker stops hammering a
       relay that keeps failing. When SMTP_HOST is empty the service logs
       the message instead of sending it (local development, tests).
Who:   Singleton `mail_service`, used through MailService.send_quietly().

Resilience Strategy:
    1. Circuit breaker: after CB_FAILURE_THRESHOLD consecutive failures,
       sends are rejected instantly for CB_RECOVERY_TIMEOUT seconds
    2. Socket timeout (SMTP_TIMEOUT) bounds each attempt
    3. No retries: a lost confirmation mail is logged, not re-sent
"""

import asyncio
import logging
import smtplib
import time
from email.message import EmailMessage
from typing import Optional

from zoo_api.config import settings
from zoo_api.exceptions import CircuitBreakerOpenError, MailDeliveryError
from zoo_api.services.mail_base import MailMessage, MailService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Three-state guard around the SMTP relay.

    closed     sends go through; consecutive failures are counted
    open       sends are refused until recovery_timeout has passed since
               the breaker opened
    half_open  one probe send is let through; its outcome closes or
               re-opens the breaker

    `clock` returns monotonic seconds and is swapped out in tests.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60, clock=time.monotonic):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self.state = self.CLOSED
        self.failure_count = 0
        self.opened_at: Optional[float] = None

    def _seconds_until_probe(self) -> float:
        if self.opened_at is None:
            return 0.0
        return self.recovery_timeout - (self._clock() - self.opened_at)

    def can_execute(self) -> bool:
        """Return True if a send may proceed, else raise CircuitBreakerOpenError."""
        if self.state != self.OPEN:
            return True

        remaining = self._seconds_until_probe()
        if remaining > 0:
            raise CircuitBreakerOpenError(recovery_time=int(remaining) + 1)

        logger.info("Mail circuit half-open; letting one probe through")
        self.state = self.HALF_OPEN
        return True

    def record_success(self) -> None:
        if self.state != self.CLOSED:
            logger.info("Mail circuit closed again after a successful send")
        self.state = self.CLOSED
        self.failure_count = 0
        self.opened_at = None

    def record_failure(self) -> None:
        self.failure_count += 1
        tripped = (
            self.state == self.HALF_OPEN
            or self.failure_count >= self.failure_threshold
        )
        if tripped and self.state != self.OPEN:
            self.state = self.OPEN
            self.opened_at = self._clock()
            logger.error(
                "Mail circuit opened after %d failure(s); pausing sends for %ds",
                self.failure_count,
                self.recovery_timeout,
            )


# ══════════════════════════════════════════════════════════════════════════
# SMTP Mail Service
# ══════════════════════════════════════════════════════════════════════════

class SmtpMailService(MailService):
    """SMTP implementation of MailService (see module docstring)."""

    def __init__(self):
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        logger.info(
            "SmtpMailService initialized (enabled=%s, host=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds))",
            settings.mail_enabled,
            settings.smtp_host or "-",
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def send(self, message: MailMessage) -> None:
        if not settings.mail_enabled:
            logger.info("Mail disabled; not sending '%s' to %s", message.subject, message.to)
            return

        self.circuit_breaker.can_execute()  # Raises CircuitBreakerOpenError if open

        start_time = time.time()
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            self.circuit_breaker.record_failure()
            raise MailDeliveryError(
                message="Could not deliver mail",
                context={
                    "to": message.to,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
            )

        self.circuit_breaker.record_success()
        logger.info(
            "Mail '%s' sent to %s in %.0fms",
            message.subject,
            message.to,
            (time.time() - start_time) * 1000,
        )

    def _deliver(self, message: MailMessage) -> None:
        """Blocking SMTP conversation; runs in a worker thread."""
        email = EmailMessage()
        email["From"] = settings.mail_from
        email["To"] = message.to
        email["Subject"] = message.subject
        email.set_content(message.body)

        with smtplib.SMTP(
            settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout
        ) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(email)

    async def health_check(self) -> bool:
        return settings.mail_enabled and self.circuit_breaker.state != CircuitBreaker.OPEN


# ── Singleton Instance ────────────────────────────────────────────────────
mail_service = SmtpMailService()
