"""
Guild Desk - Conversation Engine
Per-message control flow: track speakers, keep the channel transcript,
gate the reply, generate, clean and remember.
"""

import time
from typing import Awaitable, Callable, Iterable, List, Optional

from config import BOT_PERSONA_NAME, BOT_NICKNAMES
from constants import USER_FRIENDLY_ERRORS
from errors import ConfigUnavailable, RateLimited, Unrecoverable
from history import HistoryStore, Turn
from participants import ParticipantTracker
from persona import PromptBuilder, welcome_message
from prometheus_metrics import metrics_manager
from response_sanitizer import sanitize_response
from sheet_client import greeting_seed
import gate
import logger as log

Reply = Callable[[str], Awaitable[object]]


class InboundMessage:
    """Platform-neutral view of a chat message."""

    def __init__(self, channel_id, speaker_id, speaker_name: str, text: str,
                 is_bot_author: bool = False, mentions_agent: bool = False):
        self.channel_id = str(channel_id)
        self.speaker_id = str(speaker_id)
        self.speaker_name = speaker_name
        self.text = text
        self.is_bot_author = is_bot_author
        self.mentions_agent = mentions_agent


class ConversationEngine:
    """Owns the process-wide conversation state (transcripts and recent
    speakers per channel). State is cleared only by a restart."""

    def __init__(self, source, generator, history: HistoryStore = None,
                 tracker: ParticipantTracker = None, response_gate: gate.ResponseGate = None,
                 prompt_builder: PromptBuilder = None, names: Iterable[str] = None,
                 character_name: str = BOT_PERSONA_NAME, clock: Callable[[], float] = time.time):
        self.source = source
        self.generator = generator
        self.history = history or HistoryStore()
        self.tracker = tracker or ParticipantTracker()
        self.gate = response_gate or gate.ResponseGate()
        self.character_name = character_name
        self.prompt_builder = prompt_builder or PromptBuilder(character_name)
        self.names = list(names) if names is not None else [character_name] + BOT_NICKNAMES
        self.clock = clock
        self._last_seed: Optional[List[Turn]] = None

    async def handle(self, message: InboundMessage, reply: Reply) -> Optional[str]:
        """Process one inbound message. Returns the text sent, if any.

        Never raises: every failure ends in a single in-persona apology.
        """
        if message.is_bot_author:
            return None

        try:
            return await self._handle(message, reply)
        except ConfigUnavailable as e:
            log.warn(f"Config unavailable: {e}", message.channel_id)
            metrics_manager.record_error("config_unavailable")
            await self._send_apology(reply, "config_unavailable")
        except RateLimited as e:
            log.error(f"Rate limit retries exhausted: {e}", message.channel_id)
            metrics_manager.record_error("rate_limited")
            await self._send_apology(reply, "default")
        except Unrecoverable as e:
            log.error(f"Generation failed: {e}", message.channel_id)
            metrics_manager.record_error("unrecoverable")
            await self._send_apology(reply, "default")
        except Exception as e:
            log.error(f"Error processing ({type(e).__name__}): {e}", message.channel_id)
            metrics_manager.record_error("unexpected")
            await self._send_apology(reply, "default")
        return None

    async def _send_apology(self, reply: Reply, error_type: str):
        try:
            await reply(USER_FRIENDLY_ERRORS.get(error_type, USER_FRIENDLY_ERRORS["default"]))
        except Exception as e:
            log.debug(f"Could not send apology: {e}")

    async def _load_config(self):
        persona_text = await self.source.load_persona_text()
        seed = await self.source.load_knowledge_seed()
        if persona_text is None or seed is None:
            raise ConfigUnavailable("persona or knowledge seed failed to load")
        self._last_seed = list(seed)
        return persona_text, seed

    async def _handle(self, message: InboundMessage, reply: Reply) -> Optional[str]:
        now = self.clock()
        channel_id = message.channel_id
        metrics_manager.record_message()

        self.tracker.touch(channel_id, message.speaker_id, now)
        active = self.tracker.active_count(channel_id, now)
        log.debug(f"Active participants: {active}", channel_id)
        addressed = gate.is_addressed(message.text, self.names, message.mentions_agent)

        persona_text, seed = await self._load_config()

        # No await between fetching the transcript and recording the message
        transcript = self.history.get_or_create(channel_id, seed, now)
        is_new = not transcript.has_spoken(message.speaker_id)
        self.history.append(
            channel_id, Turn.user(message.speaker_id, message.speaker_name, message.text), now
        )
        metrics_manager.update_active_channels(self.history.channel_count())

        decision = self.gate.decide(gate.GateContext(
            is_addressed=addressed,
            is_new_participant=is_new,
            transcript_participants=len(transcript.participants()),
            active_participants=active,
        ))
        log.debug(f"Gate: {decision}", channel_id)

        if decision.reason == gate.NEW_PARTICIPANT:
            log.info(f"New participant detected: {message.speaker_name}. Greeting.", channel_id)
            metrics_manager.record_gate_decision(decision.kind, decision.reason)
            return await self._deliver(channel_id, welcome_message(message.speaker_name, self.character_name),
                                       reply, decision.reason)

        if not self.gate.should_generate(decision):
            log.debug(f"Not replying due to probability check ({decision.probability:.2f})", channel_id)
            metrics_manager.record_gate_decision(gate.SUPPRESS, gate.NOT_SELECTED)
            return None

        system_prompt = self.prompt_builder.build(persona_text, decision.reason)
        raw = await self.generator.generate(transcript.turns, system_prompt)
        text = sanitize_response(raw, self.character_name)

        final = self.gate.after_generation(decision, text)
        metrics_manager.record_gate_decision(final.kind, final.reason)
        if final.is_suppressed:
            log.info(f"{self.character_name} decided to ignore.", channel_id)
            return None
        if not text:
            log.warn("Empty response after processing", channel_id)
            return None

        return await self._deliver(channel_id, text, reply, decision.reason)

    async def _deliver(self, channel_id: str, text: str, reply: Reply, reason: str) -> str:
        await reply(text)
        # A /reset can clear the channel while the reply is being generated
        if self.history.get(channel_id) is None:
            log.debug("Transcript cleared during generation, reply not recorded", channel_id)
        else:
            self.history.append(channel_id, Turn.agent(text, speaker_name=self.character_name), self.clock())
        metrics_manager.record_response(reason)
        return text

    def record_interaction(self, channel_id, speaker_id, speaker_name: str, action_text: str, reply_text: str):
        """Feed a menu action and its answer into the channel transcript."""
        seed = self._last_seed or greeting_seed(self.character_name)
        self.history.record_exchange(
            str(channel_id),
            Turn.user(speaker_id, speaker_name, action_text),
            Turn.agent(reply_text, speaker_name=self.character_name),
            seed,
            self.clock(),
        )
        log.debug(f'User {speaker_name} action: "{action_text}". History updated.', str(channel_id))

    def reset_channel(self, channel_id) -> bool:
        cleared = self.history.clear(str(channel_id))
        metrics_manager.update_active_channels(self.history.channel_count())
        return cleared
