"""Terminal-driven login flow.

Started when the main session shows its first QR code.  It claims the
arbiter for the terminal, asks the operator for a method (unless one is
configured), and then either keeps rendering QR codes or walks the
pairing-code exchange, falling back to QR on request.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Protocol

from ..errors import AuthStateError, OwnershipConflict, PairingCodeError, TransportUnavailable, ValidationError
from .arbiter import AuthArbiter, AuthMethod, AuthOwner, AuthPhase

logger = logging.getLogger(__name__)

METHOD_MENU = "\nChoose authentication method:\n  1. QR code\n  2. Pairing code"
METHOD_QUESTION = "Enter choice (1/2): "
PHONE_QUESTION = "Enter your phone number (with country code, e.g. 254712345678): "
RETRY_QUESTION = "Retry pairing (r) or fall back to QR code (q)? "


class OperatorPrompt(Protocol):
    """Interactive console used by the terminal flow."""

    async def ask(self, question: str, timeout: float | None = None) -> str:
        """Return one line of operator input; raise ``TimeoutError`` on expiry."""
        ...

    def show(self, text: str) -> None: ...

    def show_qr(self, payload: str) -> None: ...

    def show_pairing_code(self, code: str) -> None: ...


class _PairingOutcome(enum.Enum):
    issued = "issued"
    failed = "failed"
    abandoned = "abandoned"


class TerminalAuthFlow:
    def __init__(
        self,
        arbiter: AuthArbiter,
        prompt: OperatorPrompt,
        *,
        preferred_method: str = "",
        pairing_number: str = "",
        input_timeout: float = 0.0,
        max_phone_attempts: int = 0,
    ) -> None:
        self._arbiter = arbiter
        self._prompt = prompt
        self._preferred = preferred_method
        self._pairing_number = pairing_number
        self._input_timeout = input_timeout or None
        self._max_phone_attempts = max_phone_attempts
        self._task: asyncio.Task[AuthMethod | None] | None = None
        self._conflicted = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_qr(self, payload: str) -> None:
        """React to a QR code from the main session.

        Renders it while the terminal waits on a QR scan.  Otherwise it
        starts the flow, unless the terminal already holds the session or
        the web surface was already found holding it.
        """
        s = self._arbiter.session
        if s.owner is AuthOwner.terminal:
            if s.phase is AuthPhase.qr_pending:
                self._prompt.show_qr(payload)
            return
        if s.owner is AuthOwner.none:
            self._conflicted = False
        elif self._conflicted:
            return
        if self.active or s.phase is AuthPhase.authenticated:
            return
        self._task = asyncio.create_task(self.run())

    async def run(self) -> AuthMethod | None:
        """Drive one terminal login attempt; returns the method that ended it."""
        try:
            await self._arbiter.claim(AuthOwner.terminal)
        except OwnershipConflict as exc:
            logger.warning("[auth.terminal] %s; not prompting", exc)
            self._conflicted = True
            return None
        except AuthStateError as exc:
            logger.info("[auth.terminal] %s", exc)
            return None

        try:
            method = await self._choose_method()
            while True:
                if method is AuthMethod.qr:
                    await self._arbiter.select_method(AuthOwner.terminal, AuthMethod.qr)
                    payload = self._arbiter.latest_qr
                    if payload:
                        self._prompt.show_qr(payload)
                    return AuthMethod.qr

                await self._arbiter.select_method(AuthOwner.terminal, AuthMethod.pairing)
                outcome = await self._pair()
                if outcome is _PairingOutcome.issued:
                    return AuthMethod.pairing
                if outcome is _PairingOutcome.abandoned:
                    return None
                method = await self._retry_or_fallback()
        except (AuthStateError, TransportUnavailable) as exc:
            # The attempt was reset underneath us (auth failure, logout, login elsewhere).
            logger.info("[auth.terminal] attempt ended: %s", exc)
            return None

    async def cancel(self, notice: str = "") -> bool:
        """Abandon the prompt in progress, leaving the arbiter alone.

        Used when the session was reset or completed underneath the
        terminal; the next QR code starts a fresh attempt.
        """
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        if notice:
            self._prompt.show(notice)
        logger.info("[auth.terminal] prompt cancelled")
        return True

    async def stop(self) -> None:
        await self.cancel()
        await self._arbiter.release(AuthOwner.terminal)

    # -- steps -------------------------------------------------------------

    def _remaining_selection_time(self) -> float | None:
        deadline = self._arbiter.session.deadline
        if deadline is None:
            return None
        return max(0.0, deadline - self._arbiter.clock())

    async def _choose_method(self) -> AuthMethod:
        if self._preferred == "pairing":
            return AuthMethod.pairing
        if self._preferred == "qr":
            return AuthMethod.qr
        self._prompt.show(METHOD_MENU)
        try:
            answer = await self._prompt.ask(METHOD_QUESTION, self._remaining_selection_time())
        except TimeoutError:
            self._prompt.show("\n⏰ No selection made, defaulting to QR code")
            logger.info("[auth.terminal] method selection timed out, using qr")
            return AuthMethod.qr
        return AuthMethod.pairing if answer.strip() == "2" else AuthMethod.qr

    async def _pair(self) -> _PairingOutcome:
        self._prompt.show("\n🔑 Pairing code requested")
        attempts = 0
        configured = self._pairing_number
        while True:
            if configured:
                number, configured = configured, ""
            else:
                try:
                    number = await self._prompt.ask(PHONE_QUESTION, self._input_timeout)
                except TimeoutError:
                    logger.warning("[auth.terminal] phone number entry timed out, releasing session")
                    await self._arbiter.release(AuthOwner.terminal)
                    return _PairingOutcome.abandoned

            try:
                code = await self._arbiter.request_pairing_code(AuthOwner.terminal, number)
            except ValidationError as exc:
                attempts += 1
                self._prompt.show(f"❌ {exc}")
                if self._max_phone_attempts and attempts >= self._max_phone_attempts:
                    logger.warning(
                        "[auth.terminal] %d invalid phone numbers, releasing session", attempts,
                    )
                    await self._arbiter.release(AuthOwner.terminal)
                    return _PairingOutcome.abandoned
                continue
            except PairingCodeError as exc:
                self._prompt.show(f"\n❌ Error requesting pairing code: {exc}")
                return _PairingOutcome.failed

            self._prompt.show_pairing_code(code)
            return _PairingOutcome.issued

    async def _retry_or_fallback(self) -> AuthMethod:
        try:
            answer = await self._prompt.ask(RETRY_QUESTION, self._input_timeout)
        except TimeoutError:
            answer = "q"
        if answer.strip().lower() in ("r", "retry"):
            return AuthMethod.pairing
        self._prompt.show("Falling back to QR code...")
        return AuthMethod.qr
