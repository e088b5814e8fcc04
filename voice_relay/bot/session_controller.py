"""
Per-call session state machine.

CallSessionController owns one CallSession and applies every transition to it:
engine and telephony readiness, greeting delivery, caller audio gating, the response
request gate, response completion, tool dispatch and agent handoff. It talks to the
outside world only through three collaborators:

- engine: anything with `async send_event(dict) -> bool` (RealtimeClient)
- audio_sink: anything with `is_open` and `async send_audio_frame(bytes) -> bool`
  (MediaRelay)
- synthesizer: anything with `async synthesize(str) -> bytes` (SpeechSynthesizer)

Slow work (tool HTTP calls, speech synthesis and paced playback) runs in background
tasks so the engine receive loop keeps processing events for the call. Tool
dispatches run one at a time in arrival order, and so do playbacks.
"""

import asyncio
import logging
import uuid
from collections import deque
from typing import Awaitable, Callable, Optional, Set

from voice_relay.bot.agents import session_update
from voice_relay.bot.event_translator import EngineSignal, SignalKind, translate_event
from voice_relay.config.constants import (
    BARGE_IN_DROP,
    BARGE_IN_QUEUE,
    BARGE_IN_QUEUE_FRAMES,
    FRAME_DURATION_S,
    GREETING_MODE_AUDIO,
    GREETING_MODE_ENGINE,
    GREETING_TRIGGER_TEXT,
    LOGGER_NAME,
    REASON_GREETING,
    REASON_HANDOFF,
    REASON_USER_SPEECH,
)
from voice_relay.models.engine_schemas import (
    ConversationItemCreateEvent,
    EngineEvent,
    InputAudioAppendEvent,
    ResponseCreateEvent,
)
from voice_relay.models.session import CallSession, Handoff, SessionPhase
from voice_relay.services.prompt_store import PromptStore
from voice_relay.services.speech import SynthesisError, split_frames

logger = logging.getLogger(LOGGER_NAME)


class CallSessionController:
    """Drives a CallSession in response to telephony and engine events."""

    def __init__(
        self,
        session: CallSession,
        engine,
        audio_sink,
        synthesizer,
        dispatcher,
        prompts: PromptStore,
        greeting_audio: Optional[bytes] = None,
        greeting_mode: str = GREETING_MODE_AUDIO,
        barge_in_policy: str = BARGE_IN_DROP,
        frame_pacing: float = FRAME_DURATION_S,
    ):
        self.session = session
        self.engine = engine
        self.audio_sink = audio_sink
        self.synthesizer = synthesizer
        self.dispatcher = dispatcher
        self.prompts = prompts
        self.greeting_audio = greeting_audio
        self.greeting_mode = greeting_mode
        self.barge_in_policy = barge_in_policy
        self.frame_pacing = frame_pacing

        self._tasks: Set[asyncio.Task] = set()
        self._tool_lock = asyncio.Lock()
        self._playback_lock = asyncio.Lock()
        self._playbacks = 0
        self._held_audio: deque = deque(maxlen=BARGE_IN_QUEUE_FRAMES)
        self._flushing = False

    async def on_engine_open(self) -> None:
        """Configure the engine for the current agent and mark it ready."""
        session = self.session
        await self._send(session_update(session.current_agent, self.prompts.current, initial=True))
        session.engine_ready = True
        session.update_phase()
        logger.info(f"[{session.label}] Engine ready, agent: {session.current_agent.value}")
        await self.maybe_deliver_greeting()

    async def on_telephony_start(self, call_id: Optional[str], stream_id: Optional[str]) -> None:
        """Record the identifiers announced by the telephony stream."""
        session = self.session
        session.call_id = call_id
        session.media_stream_id = stream_id
        session.telephony_started = True
        session.update_phase()
        logger.info(f"[{session.label}] Telephony stream started: {stream_id}")
        await self.maybe_deliver_greeting()

    async def close(self) -> None:
        """Mark the session closed and cancel outstanding tool and playback work."""
        if self.session.is_closed:
            return
        self.session.phase = SessionPhase.CLOSED
        self.session.is_speaking = False
        self._held_audio.clear()
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"[{self.session.label}] Session closed")

    async def wait_idle(self) -> None:
        """Wait until no tool dispatch or playback task is pending."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def on_caller_audio(self, payload: str) -> bool:
        """
        Forward one base64 caller frame to the engine unless the agent is speaking.

        While speaking, frames are discarded (drop policy) or held and forwarded in
        order once playback ends (queue policy).

        Returns:
            bool: True if the frame was forwarded now
        """
        session = self.session
        if session.is_closed or not session.engine_ready:
            return False
        if session.is_speaking or self._flushing:
            if self.barge_in_policy == BARGE_IN_QUEUE or self._flushing:
                self._held_audio.append(payload)
            return False
        return await self._send(InputAudioAppendEvent(audio=payload))

    async def _flush_held_audio(self) -> None:
        if not self._held_audio:
            return
        self._flushing = True
        try:
            logger.debug(f"[{self.session.label}] Forwarding {len(self._held_audio)} held caller frames")
            while self._held_audio and not self.session.is_speaking:
                await self._send(InputAudioAppendEvent(audio=self._held_audio.popleft()))
        finally:
            self._flushing = False

    async def handle_engine_event(self, event: dict) -> None:
        signal = translate_event(event)
        if signal is not None:
            await self.handle_signal(signal)

    async def handle_signal(self, signal: EngineSignal) -> None:
        """Apply one engine signal to the session."""
        session = self.session
        if session.is_closed:
            return
        kind = signal.kind

        if kind == SignalKind.RESPONSE_STARTED:
            session.reset_output()
            session.response_in_flight = True
            session.response_open = True
            if signal.request_id is not None and signal.request_id == session.requested_id:
                session.active_response_reason = session.requested_reason
                session.requested_reason = None
                session.requested_id = None
            else:
                # Not ours, e.g. left over from before a reconfiguration
                session.active_response_reason = None

        elif kind == SignalKind.TRANSCRIPT_DELTA:
            session.transcript_buffer += signal.delta

        elif kind == SignalKind.TEXT_DELTA:
            session.text_buffer += signal.delta

        elif kind == SignalKind.SPEECH_STOPPED:
            if session.is_speaking:
                logger.debug(f"[{session.label}] Ignoring end of speech while agent is speaking")
            else:
                await self.request_response(REASON_USER_SPEECH)

        elif kind == SignalKind.TOOL_CALL_STARTED:
            session.tool_calls[signal.call_id] = signal.tool_name
            logger.info(f"[{session.label}] Tool call started: {signal.tool_name} ({signal.call_id})")

        elif kind == SignalKind.TOOL_ARGUMENTS_DONE:
            tool_name = session.tool_calls.pop(signal.call_id, None)
            if not tool_name:
                logger.warning(f"[{session.label}] Unknown tool call id: {signal.call_id}")
                return
            self._spawn(self._run_tool(signal.call_id, tool_name, signal.arguments))

        elif kind == SignalKind.RESPONSE_COMPLETED:
            await self._complete_response()

        elif kind == SignalKind.ENGINE_ERROR:
            error = signal.error
            logger.error(
                f"[{session.label}] Engine error: {error.get('code') or error.get('type')}: {error.get('message')}"
            )
            await self._reject_request(signal.request_id)

    async def _reject_request(self, failed_event_id: Optional[str]) -> None:
        """
        Release the gate when the engine rejected our outstanding response.create.

        An error naming another client event leaves the gate alone. An error naming no
        event is taken as the rejection while a request has not started yet, since the
        engine will never answer it.
        """
        session = self.session
        if session.requested_id is None:
            return
        if failed_event_id is not None and failed_event_id != session.requested_id:
            return
        reason = session.requested_reason
        logger.warning(f"[{session.label}] Response request rejected: {reason}")
        session.requested_reason = None
        session.requested_id = None
        if session.response_open:
            # The engine is busy with another response; retry once it is done
            if session.pending_response_reason is None:
                session.pending_response_reason = reason
            return
        session.response_in_flight = False
        await self._reissue_pending()

    async def _complete_response(self) -> None:
        session = self.session
        reason = session.active_response_reason
        text = session.take_output()
        session.active_response_reason = None
        session.response_open = False

        if reason is None:
            if text:
                logger.warning(f"[{session.label}] Discarding unsolicited response: {text[:60]!r}")
        elif text:
            self.speak(text)

        if session.requested_id is not None:
            # Our own request has not started yet; the gate stays closed for it
            return
        session.response_in_flight = False
        await self._reissue_pending()

    async def _reissue_pending(self) -> None:
        pending = self.session.pending_response_reason
        if pending is not None:
            self.session.pending_response_reason = None
            await self.request_response(pending)

    async def request_response(self, reason: str) -> bool:
        """
        Ask the engine for a response, or queue the request if one is in flight.

        Only one response may be outstanding. A request made while one is in flight
        replaces any earlier pending reason and is reissued when the response ends.

        Returns:
            bool: True if a response.create was sent now
        """
        session = self.session
        if session.is_closed:
            return False
        if not (session.engine_ready and session.telephony_started):
            logger.warning(f"[{session.label}] Response requested before session is active ({reason}); ignoring")
            return False
        if session.response_in_flight:
            session.pending_response_reason = reason
            logger.debug(f"[{session.label}] Response in flight; queued request: {reason}")
            return False

        request_id = f"req_{uuid.uuid4().hex[:20]}"
        session.response_in_flight = True
        session.requested_reason = reason
        session.requested_id = request_id
        if not await self._send(ResponseCreateEvent.tagged(request_id, reason)):
            session.response_in_flight = False
            session.requested_reason = None
            session.requested_id = None
            return False
        logger.info(f"[{session.label}] Requested response: {reason}")
        return True

    async def maybe_deliver_greeting(self) -> bool:
        """Deliver the greeting once both legs are ready; later calls do nothing."""
        session = self.session
        if session.greeting_delivered or session.is_closed:
            return False
        if not (session.engine_ready and session.telephony_started):
            return False
        session.greeting_delivered = True

        if self.greeting_mode == GREETING_MODE_ENGINE:
            logger.info(f"[{session.label}] Triggering engine greeting")
            await self._send(ConversationItemCreateEvent.user_message(GREETING_TRIGGER_TEXT))
            await self.request_response(REASON_GREETING)
            return True

        if not self.greeting_audio:
            logger.warning(f"[{session.label}] No greeting audio loaded; continuing without greeting")
            return False
        logger.info(f"[{session.label}] Playing greeting audio")
        self.play_audio(self.greeting_audio, "greeting")
        return True

    async def _run_tool(self, call_id: str, tool_name: str, arguments: dict) -> None:
        async with self._tool_lock:
            if self.session.is_closed:
                return
            try:
                await self.dispatcher.dispatch(self, call_id, tool_name, arguments)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[{self.session.label}] Tool dispatch failed for {tool_name}: {e}", exc_info=True)

    async def submit_tool_output(self, call_id: str, output) -> bool:
        """Send a tool result back to the engine as a function_call_output item."""
        return await self._send(ConversationItemCreateEvent.function_output(call_id, output))

    async def apply_handoff(self, handoff: Handoff) -> None:
        """
        Switch to another agent persona and reconfigure the engine to match it.

        The response gate and call identifiers are untouched. A forwarded question is
        injected as a user turn and answered by the new agent.
        """
        session = self.session
        logger.info(
            f"[{session.label}] Handoff {handoff.from_agent.value} -> {handoff.to_agent.value}"
            + (f" with question: {handoff.question!r}" if handoff.question else "")
        )
        session.current_agent = handoff.to_agent
        await self._send(session_update(handoff.to_agent, self.prompts.current))
        if handoff.question:
            await self._send(ConversationItemCreateEvent.user_message(handoff.question))
            await self.request_response(REASON_HANDOFF)

    def speak(self, text: str) -> asyncio.Task:
        """Synthesize text and play it to the caller in the background."""
        return self._start_playback(lambda: self._synthesize_and_play(text))

    def play_audio(self, audio: bytes, label: str = "audio") -> asyncio.Task:
        """Play precomputed mu-law audio to the caller in the background."""
        return self._start_playback(lambda: self._play_frames(audio, label))

    def _start_playback(self, playback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        # Speaking starts now, not when the task first runs, so caller audio
        # arriving in between is already gated.
        self._playbacks += 1
        self.session.is_speaking = True
        return self._spawn(self._run_playback(playback))

    async def _run_playback(self, playback: Callable[[], Awaitable[None]]) -> None:
        try:
            async with self._playback_lock:
                await playback()
        finally:
            self._playbacks -= 1
            if self._playbacks == 0:
                self.session.is_speaking = False
                if not self.session.is_closed:
                    await self._flush_held_audio()

    async def _synthesize_and_play(self, text: str) -> None:
        if self.session.is_closed:
            return
        try:
            audio = await self.synthesizer.synthesize(text)
        except SynthesisError as e:
            logger.error(f"[{self.session.label}] TTS error: {e}")
            return
        await self._play_frames(audio, "speech")

    async def _play_frames(self, audio: bytes, label: str) -> None:
        frames = split_frames(audio)
        sent = 0
        for frame in frames:
            if self.session.is_closed or not self.audio_sink.is_open:
                logger.info(f"[{self.session.label}] Stopping {label} playback; call closed")
                break
            await self.audio_sink.send_audio_frame(frame)
            sent += 1
            await asyncio.sleep(self.frame_pacing)
        logger.debug(f"[{self.session.label}] Played {sent}/{len(frames)} {label} frames")

    async def _send(self, event: EngineEvent) -> bool:
        if self.session.is_closed:
            return False
        return await self.engine.send_event(event.to_payload())

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
