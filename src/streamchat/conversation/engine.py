"""Conversation engine.

Orchestrates one turn at a time: appends the user message and an assistant
placeholder, makes sure a credential is valid, opens the reply transport,
decodes what arrives and applies it to the placeholder in order.

Everything runs on the event loop of the caller; the only concurrency is the
single task that drives the in-flight request.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from contextlib import aclosing
from functools import partial

from ..auth import SessionAuthenticator
from ..config import (
    AUTH_FAILED_TEXT,
    CONNECTION_ERROR_TEXT,
    NO_RESPONSE_TEXT,
    STOPPED_BY_USER_TEXT,
    TIMED_OUT_TEXT,
    UNEXPECTED_ERROR_TEXT,
    BusyPolicy,
)
from ..errors import AuthenticationError, TransportError
from ..streaming import DecodedEvent, Delta, Done, ErrorMarker, StatusMarker
from ..transport import ChatTransport
from .log import MessageLog
from .models import ConversationSnapshot, Message, MessageStatus, Role, TurnState
from .turn import AbortReason, ActiveTurn

logger = logging.getLogger(__name__)

Listener = Callable[[ConversationSnapshot], None]


class ConversationEngine:
    """Drives streamed assistant replies into an ordered message log.

    Usage:
        engine = ConversationEngine(authenticator, transport)
        engine.subscribe(render)
        task = await engine.send_message("What is my balance?")
        await task            # or: await engine.cancel()
    """

    def __init__(
        self,
        authenticator: SessionAuthenticator,
        transport: ChatTransport,
        busy_policy: BusyPolicy = BusyPolicy.REJECT,
        timeout: float | None = None,
        greeting: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the engine.

        Args:
            authenticator: Supplies a valid credential before each request
            transport: Opens the chat request and yields reply text
            busy_policy: Whether a send during an active turn is ignored or
                cancels that turn first
            timeout: Seconds after which an unfinished turn is aborted
            greeting: Assistant message placed first in every new log
            clock: Returns the current time as epoch seconds
        """
        self._authenticator = authenticator
        self._transport = transport
        self._busy_policy = busy_policy
        self._timeout = timeout
        self._greeting = greeting
        self._clock = clock
        self._listeners: list[Listener] = []
        self._log = self._new_log()
        self._active: ActiveTurn | None = None
        self._last_state = TurnState.IDLE
        self._thinking = False

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._log.snapshot()

    @property
    def state(self) -> TurnState:
        if self._active is not None:
            return self._active.state
        return self._last_state

    @property
    def busy(self) -> bool:
        """True while a turn is in flight."""
        return self._active is not None and not self._active.is_terminal

    @property
    def thinking(self) -> bool:
        """True after a processing marker until content or a terminal event arrives."""
        return self._thinking

    def snapshot(self) -> ConversationSnapshot:
        return ConversationSnapshot(
            messages=self._log.snapshot(),
            state=self.state,
            thinking=self._thinking,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for snapshots; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def send_message(self, text: str) -> asyncio.Task[None] | None:
        """Start a turn for ``text``.

        Returns:
            The task driving the turn, or None if the message was rejected
            (blank text, or busy under the reject policy)
        """
        text = text.strip()
        if not text:
            return None

        # Another send may have started a turn while we waited for the abort
        while self.busy:
            if self._busy_policy is BusyPolicy.REJECT:
                logger.debug("Ignoring message while turn %s is active", self._active.id)
                return None
            await self._abort_active(AbortReason.SUPERSEDED)

        return self._start_turn(text)

    async def cancel(self) -> None:
        """Stop the active turn, keeping whatever content already arrived.

        Calling it with no active turn does nothing.
        """
        await self._abort_active(AbortReason.USER)

    async def retry(self) -> asyncio.Task[None] | None:
        """Resend the last user message if the previous turn failed."""
        if self.busy or self._last_state is not TurnState.ERRORED:
            return None
        for message in reversed(self._log.snapshot()):
            if message.role is Role.USER:
                return await self.send_message(message.content)
        return None

    async def reset_session(self) -> None:
        """Drop the credential and the conversation, then authenticate again.

        Raises:
            AuthenticationError: If the new session cannot be established
        """
        await self.cancel()
        await self._authenticator.logout()
        self._log = self._new_log()
        self._last_state = TurnState.IDLE
        self._thinking = False
        self._notify()
        await self._authenticator.authenticate()

    async def close(self) -> None:
        """Cancel any active turn and detach all observers."""
        await self.cancel()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Turn lifecycle
    # ------------------------------------------------------------------

    def _new_log(self) -> MessageLog:
        log = MessageLog()
        if self._greeting:
            log.append(Message(
                role=Role.ASSISTANT,
                content=self._greeting,
                status=MessageStatus.COMPLETE,
            ))
        return log

    def _start_turn(self, text: str) -> asyncio.Task[None]:
        if self._log.streaming() is not None:
            raise RuntimeError("Cannot start a turn while a message is still streaming")
        placeholder = Message(role=Role.ASSISTANT, status=MessageStatus.STREAMING)
        self._log.append(Message(role=Role.USER, content=text, status=MessageStatus.COMPLETE))
        self._log.append(placeholder)

        turn = ActiveTurn(text, placeholder.id)
        self._active = turn
        self._thinking = False
        turn.task = asyncio.create_task(self._run_turn(turn), name=f"turn-{turn.id}")
        turn.task.add_done_callback(partial(self._on_turn_done, turn))
        if self._timeout is not None:
            turn.arm_timeout(self._timeout)

        logger.debug("Turn %s started", turn.id)
        self._notify()
        return turn.task

    async def _abort_active(self, reason: AbortReason) -> None:
        turn = self._active
        if turn is None or turn.is_terminal:
            return
        task = turn.task
        turn.abort(reason)
        # Wait for the request to unwind so no late chunk reaches the log
        if task is not None and task is not asyncio.current_task():
            await asyncio.wait([task])
            self._on_turn_done(turn, task)

    async def _run_turn(self, turn: ActiveTurn) -> None:
        try:
            credential = await self._authenticator.ensure_valid(self._clock())
        except AuthenticationError as e:
            logger.warning("Turn %s: %s", turn.id, e)
            self._settle(turn, TurnState.ERRORED, MessageStatus.ERRORED,
                         content=AUTH_FAILED_TEXT, error=str(e))
            return

        self._transition(turn, TurnState.SENDING)
        last_chunk = ""
        try:
            async with aclosing(self._transport.stream(turn.user_text, credential)) as chunks:
                async for chunk in chunks:
                    if turn.state is TurnState.SENDING:
                        self._transition(turn, TurnState.STREAMING)
                    last_chunk = chunk
                    if self._transport.cumulative:
                        events = turn.decoder.feed(chunk)
                    else:
                        events = turn.decoder.feed_chunk(chunk)
                    self._apply_all(turn, events)
                    if turn.is_terminal:
                        # Leaving the block closes the stream and aborts the request
                        return
        except TransportError as e:
            logger.warning("Turn %s: %s", turn.id, e)
            self._fail_transport(turn, e)
            return

        final = turn.decoder.flush(last_chunk if self._transport.cumulative else None)
        self._apply_all(turn, final)
        if not turn.is_terminal:
            self._end_without_done(turn)

    def _apply_all(self, turn: ActiveTurn, events: list[DecodedEvent]) -> None:
        for event in events:
            self._apply(turn, event)

    def _apply(self, turn: ActiveTurn, event: DecodedEvent) -> None:
        # Events from a turn that is no longer current are stale
        if turn is not self._active or turn.is_terminal:
            return

        if isinstance(event, Delta):
            turn.saw_delta = True
            self._thinking = False
            self._log.extend_last(turn.message_id, event.text)
            self._notify()
        elif isinstance(event, StatusMarker):
            turn.saw_status = True
            self._thinking = True
            self._notify()
        elif isinstance(event, Done):
            self._settle(turn, TurnState.COMPLETED, MessageStatus.COMPLETE)
        elif isinstance(event, ErrorMarker):
            self._settle(turn, TurnState.ERRORED, MessageStatus.ERRORED,
                         content=event.message, error=event.message)

    def _end_without_done(self, turn: ActiveTurn) -> None:
        if turn.saw_delta:
            self._settle(turn, TurnState.COMPLETED, MessageStatus.COMPLETE)
            return
        # TODO: revisit once it is known whether the backend can send an empty successful reply
        self._settle(turn, TurnState.ERRORED, MessageStatus.ERRORED,
                     content=NO_RESPONSE_TEXT, error="No response content received")

    def _fail_transport(self, turn: ActiveTurn, error: TransportError) -> None:
        if turn.saw_delta:
            content = None
        elif turn.saw_status:
            content = CONNECTION_ERROR_TEXT
        else:
            content = NO_RESPONSE_TEXT
        self._settle(turn, TurnState.ERRORED, MessageStatus.ERRORED,
                     content=content, error=str(error))

    def _on_turn_done(self, turn: ActiveTurn, task: asyncio.Task[None]) -> None:
        """Settle a turn whose task ended without settling it itself."""
        if turn.is_terminal:
            return

        has_content = turn.saw_delta
        if task.cancelled():
            if turn.abort_reason is AbortReason.TIMEOUT:
                self._settle(turn, TurnState.ERRORED, MessageStatus.ERRORED,
                             content=None if has_content else TIMED_OUT_TEXT,
                             error=TIMED_OUT_TEXT)
            else:
                self._settle(turn, TurnState.CANCELLED, MessageStatus.COMPLETE,
                             content=None if has_content else STOPPED_BY_USER_TEXT,
                             stopped_by_user=True)
            return

        error = task.exception()
        if error is not None:
            logger.error("Turn %s failed unexpectedly", turn.id, exc_info=error)
        self._settle(turn, TurnState.ERRORED, MessageStatus.ERRORED,
                     content=None if has_content else UNEXPECTED_ERROR_TEXT,
                     error=str(error) if error is not None else UNEXPECTED_ERROR_TEXT)

    def _transition(self, turn: ActiveTurn, state: TurnState) -> None:
        if turn.is_terminal:
            return
        logger.debug("Turn %s: %s -> %s", turn.id, turn.state.value, state.value)
        turn.state = state
        self._notify()

    def _settle(
        self,
        turn: ActiveTurn,
        state: TurnState,
        status: MessageStatus,
        content: str | None = None,
        error: str | None = None,
        stopped_by_user: bool = False,
    ) -> None:
        if turn.is_terminal:
            return
        self._log.settle_last(
            turn.message_id, status,
            content=content, error=error, stopped_by_user=stopped_by_user,
        )
        logger.debug("Turn %s: %s -> %s", turn.id, turn.state.value, state.value)
        turn.state = state
        turn.release()
        if self._active is turn:
            self._active = None
        self._last_state = state
        self._thinking = False
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
