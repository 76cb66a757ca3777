"""Authentication arbiter -- one login attempt at a time, terminal or web.

The arbiter owns the single :class:`AuthSession` of the process.  Two
entry points compete for it: the terminal flow and the HTTP control
surface.  Whoever claims first owns the session until the attempt ends
(authenticated, released, or reset by a transport failure); a claim from
the other entry point meanwhile raises :class:`OwnershipConflict` and
leaves the session untouched.

Phases::

    idle -> method-selection -> qr-pending | pairing-pending -> authenticated
                  ^                               |
                  +------------ failed <----------+   (terminal pairing failure)

Transport failures and forced logouts go back to ``idle`` from any
phase and release ownership.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any

from ..errors import (
    AuthFailure,
    AuthStateError,
    CourierError,
    OwnershipConflict,
    PairingCodeError,
    TransportUnavailable,
)
from ..transport import Transport
from .phone import validate_phone_number

logger = logging.getLogger(__name__)

DEFAULT_METHOD_SELECTION_TIMEOUT = 60.0


class AuthPhase(enum.Enum):
    idle = "idle"
    method_selection = "method-selection"
    qr_pending = "qr-pending"
    pairing_pending = "pairing-pending"
    authenticated = "authenticated"
    failed = "failed"


class AuthMethod(enum.Enum):
    unset = "unset"
    qr = "qr"
    pairing = "pairing"


class AuthOwner(enum.Enum):
    none = "none"
    terminal = "terminal"
    web = "web"


_OPEN_PHASES = frozenset({AuthPhase.idle, AuthPhase.authenticated})


@dataclass(frozen=True)
class AuthSession:
    phase: AuthPhase = AuthPhase.idle
    method: AuthMethod = AuthMethod.unset
    owner: AuthOwner = AuthOwner.none
    deadline: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "method": self.method.value,
            "owner": self.owner.value,
            "deadline": self.deadline,
        }


_IDLE = AuthSession()


class AuthArbiter:
    """State machine arbitrating terminal and web login attempts.

    ``main_transport`` returns the long-lived session (``None`` when it
    is not running).  ``open_transient`` starts a throw-away transport for
    web attempts made while no main session exists.  ``on_authenticated``
    runs once per successful login to bring the main session online.
    """

    def __init__(
        self,
        *,
        main_transport: Callable[[], Transport | None],
        open_transient: Callable[[], Awaitable[Transport]] | None = None,
        on_authenticated: Callable[[], Awaitable[None]] | None = None,
        method_selection_timeout: float = DEFAULT_METHOD_SELECTION_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._main_transport = main_transport
        self._open_transient = open_transient
        self._on_authenticated = on_authenticated
        self._method_selection_timeout = method_selection_timeout
        self._clock = clock

        self._lock = asyncio.Lock()
        self._session = _IDLE
        self._transient: Transport | None = None
        self._last_failure: str = ""

        self._qr_cond = asyncio.Condition()
        self._qr_payload: str | None = None
        self._qr_generation = 0
        self._qr_interrupt: CourierError | None = None

    # -- read side ---------------------------------------------------------

    @property
    def session(self) -> AuthSession:
        return self._session

    @property
    def latest_qr(self) -> str | None:
        return self._qr_payload

    @property
    def last_failure(self) -> str:
        return self._last_failure

    @property
    def has_transient(self) -> bool:
        return self._transient is not None

    def clock(self) -> float:
        """Current time on the clock that ``AuthSession.deadline`` uses."""
        return self._clock()

    def status(self) -> dict[str, Any]:
        return {
            **self._session.to_dict(),
            "qr_available": self._qr_payload is not None,
            "last_failure": self._last_failure or None,
        }

    # -- transitions -------------------------------------------------------

    def _set(self, session: AuthSession) -> None:
        old = self._session
        self._session = session
        if old != session:
            logger.info(
                "[auth.arbiter] %s -> %s owner=%s method=%s",
                old.phase.value, session.phase.value,
                session.owner.value, session.method.value,
            )

    def _require_owner(self, owner: AuthOwner) -> AuthSession:
        s = self._session
        if s.owner is not owner:
            raise AuthStateError(
                f"{owner.value} does not own the authentication session "
                f"(owner={s.owner.value}, phase={s.phase.value})"
            )
        return s

    async def claim(self, owner: AuthOwner) -> AuthSession:
        """Take ownership of the session for *owner* and enter method selection.

        Re-claiming by the current owner restarts method selection.  A
        claim from the other entry point during an attempt raises
        :class:`OwnershipConflict` without changing any state.
        """
        if owner is AuthOwner.none:
            raise ValueError("cannot claim the session for no owner")
        async with self._lock:
            s = self._session
            if s.phase is AuthPhase.authenticated:
                raise AuthStateError("session is already authenticated")
            if s.owner not in (AuthOwner.none, owner) and s.phase not in _OPEN_PHASES:
                logger.warning(
                    "[auth.arbiter] ownership conflict: %s requested while %s owns phase=%s",
                    owner.value, s.owner.value, s.phase.value,
                )
                raise OwnershipConflict(s.owner.value, owner.value)
            deadline = (
                self._clock() + self._method_selection_timeout
                if owner is AuthOwner.terminal else None
            )
            self._set(AuthSession(
                phase=AuthPhase.method_selection,
                method=AuthMethod.unset,
                owner=owner,
                deadline=deadline,
            ))
            return self._session

    async def select_method(self, owner: AuthOwner, method: AuthMethod) -> AuthSession:
        if method is AuthMethod.unset:
            raise ValueError("select a concrete method")
        async with self._lock:
            s = self._require_owner(owner)
            if s.phase is not AuthPhase.method_selection:
                raise AuthStateError(f"cannot select a method in phase {s.phase.value}")
            phase = AuthPhase.qr_pending if method is AuthMethod.qr else AuthPhase.pairing_pending
            self._set(replace(s, phase=phase, method=method, deadline=None))
            return self._session

    async def request_pairing_code(self, owner: AuthOwner, phone_number: str) -> str:
        """Ask the transport for a pairing code for *phone_number*.

        The number is validated before anything else; a malformed one
        raises :class:`ValidationError` and never reaches the transport.
        A transport failure raises :class:`PairingCodeError` after moving
        the session to ``failed``: the terminal keeps ownership and is back
        in method selection, the web entry point loses it.
        """
        number = validate_phone_number(phone_number)
        async with self._lock:
            s = self._require_owner(owner)
            if s.phase is not AuthPhase.pairing_pending:
                raise AuthStateError(f"cannot request a pairing code in phase {s.phase.value}")
            transport = self._transient or self._main_transport()
        if transport is None:
            raise TransportUnavailable("no transport session is running")

        try:
            code = await transport.request_pairing_code(number)
        except Exception as exc:
            logger.error("[auth.arbiter] pairing code request failed: %s", exc, exc_info=True)
            await self._fail_pairing(owner)
            raise PairingCodeError(str(exc) or exc.__class__.__name__) from exc
        logger.info("[auth.arbiter] pairing code issued owner=%s", owner.value)
        return code

    async def _fail_pairing(self, owner: AuthOwner) -> None:
        transient = None
        async with self._lock:
            s = self._session
            if s.owner is not owner or s.phase is not AuthPhase.pairing_pending:
                return
            self._set(replace(s, phase=AuthPhase.failed))
            if owner is AuthOwner.terminal:
                self._set(replace(
                    s,
                    phase=AuthPhase.method_selection,
                    method=AuthMethod.unset,
                    deadline=self._clock() + self._method_selection_timeout,
                ))
            else:
                self._set(_IDLE)
                transient, self._transient = self._transient, None
        await self._destroy(transient)

    async def release(self, owner: AuthOwner) -> bool:
        """Give up an in-progress attempt; no-op unless *owner* holds it."""
        transient = None
        async with self._lock:
            s = self._session
            if s.owner is not owner or s.phase is AuthPhase.authenticated:
                return False
            self._set(_IDLE)
            transient, self._transient = self._transient, None
        await self._destroy(transient)
        return True

    # -- QR payloads -------------------------------------------------------

    async def wait_for_qr(self, timeout: float | None) -> str:
        """Return the current QR payload, waiting up to *timeout* for one."""
        async with self._qr_cond:
            generation = self._qr_generation
            await asyncio.wait_for(
                self._qr_cond.wait_for(
                    lambda: self._qr_payload is not None or self._qr_generation != generation
                ),
                timeout,
            )
            if self._qr_payload is None:
                raise self._qr_interrupt or AuthStateError("authentication attempt was reset")
            return self._qr_payload

    async def _interrupt_qr_waiters(self, error: CourierError) -> None:
        async with self._qr_cond:
            self._qr_payload = None
            self._qr_generation += 1
            self._qr_interrupt = error
            self._qr_cond.notify_all()

    # -- web entry point ---------------------------------------------------

    async def _ensure_transport(self, owner: AuthOwner) -> None:
        if self._transient is not None or self._main_transport() is not None:
            return
        if owner is not AuthOwner.web or self._open_transient is None:
            raise TransportUnavailable("no transport session is running")
        logger.info("[auth.arbiter] no main session, opening transient auth client")
        transient = await self._open_transient()
        async with self._lock:
            if self._session.owner is owner and self._transient is None:
                self._transient = transient
                transient = None
        await self._destroy(transient)

    async def begin_qr(self, timeout: float | None) -> str:
        """Web QR login: claim, pick QR, and return the scannable payload."""
        await self.claim(AuthOwner.web)
        try:
            await self._ensure_transport(AuthOwner.web)
            await self.select_method(AuthOwner.web, AuthMethod.qr)
            return await self.wait_for_qr(timeout)
        except BaseException:
            await self.release(AuthOwner.web)
            raise

    async def begin_pairing(self, phone_number: str) -> str:
        """Web pairing login: validate, claim, pick pairing, return the code."""
        number = validate_phone_number(phone_number)
        await self.claim(AuthOwner.web)
        try:
            await self._ensure_transport(AuthOwner.web)
            await self.select_method(AuthOwner.web, AuthMethod.pairing)
            return await self.request_pairing_code(AuthOwner.web, number)
        except BaseException:
            await self.release(AuthOwner.web)
            raise

    # -- transport events --------------------------------------------------

    async def on_qr(self, payload: str) -> None:
        async with self._qr_cond:
            self._qr_payload = payload
            self._qr_cond.notify_all()
        logger.debug("[auth.arbiter] qr payload received len=%d", len(payload))

    async def on_authenticated(self) -> None:
        async with self._lock:
            s = self._session
            if s.phase is AuthPhase.authenticated:
                return
            self._set(replace(s, phase=AuthPhase.authenticated, deadline=None))
            self._last_failure = ""
        await self._interrupt_qr_waiters(AuthStateError("session is already authenticated"))
        if self._on_authenticated is None:
            return
        try:
            await self._on_authenticated()
        except Exception as exc:
            # The login never reached a running session; start over from idle.
            await self.on_auth_failure(f"main session failed to start: {exc}")
            raise

    async def on_ready(self) -> None:
        """The main session is up: drop any transient client and free ownership."""
        async with self._lock:
            s = self._session
            self._set(replace(s, phase=AuthPhase.authenticated, owner=AuthOwner.none, deadline=None))
            transient, self._transient = self._transient, None
        if transient is not None:
            logger.info("[auth.arbiter] main session ready, releasing transient auth client")
        await self._destroy(transient)

    async def on_auth_failure(self, reason: str) -> AuthFailure:
        failure = AuthFailure(reason)
        async with self._lock:
            self._set(replace(self._session, phase=AuthPhase.failed, deadline=None))
            self._set(_IDLE)
            self._last_failure = reason
            transient, self._transient = self._transient, None
        logger.error("[auth.arbiter] %s", failure)
        await self._interrupt_qr_waiters(failure)
        await self._destroy(transient)
        return failure

    async def on_disconnected(self, reason: str) -> None:
        async with self._lock:
            self._set(_IDLE)
            transient, self._transient = self._transient, None
        logger.warning("[auth.arbiter] session disconnected: %s", reason or "(no reason)")
        await self._interrupt_qr_waiters(AuthStateError("session was disconnected"))
        await self._destroy(transient)

    async def close(self) -> None:
        async with self._lock:
            transient, self._transient = self._transient, None
        await self._destroy(transient)

    async def _destroy(self, transport: Transport | None) -> None:
        """Tear down a transient client; its QR payloads die with it."""
        if transport is None:
            return
        try:
            await transport.destroy()
        except Exception:
            logger.warning("[auth.arbiter] failed to destroy transient client", exc_info=True)
        if self._main_transport() is None:
            await self._interrupt_qr_waiters(AuthStateError("authentication client was closed"))
