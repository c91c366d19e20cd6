"""
Guild Desk - Response Gate
Decides whether the persona answers a message, and honors the model's
request to stay silent.
"""

import random
from typing import Iterable, Optional

from config import REPLY_CHANCE_FACTOR
from constants import IGNORE_SENTINEL

MUST_REPLY = "must_reply"
PROBABILISTIC = "probabilistic"
SUPPRESS = "suppress"

# Reasons
NEW_PARTICIPANT = "new_participant"
ADDRESSED = "addressed"
ONE_ON_ONE = "one_on_one"
GROUP_CHAT = "group_chat"
NOT_SELECTED = "not_selected"
DECLINED = "declined"


class GateDecision:
    """Outcome of the gate for one message."""

    def __init__(self, kind: str, reason: str, probability: float = 1.0):
        self.kind = kind
        self.reason = reason
        self.probability = probability

    @classmethod
    def must_reply(cls, reason: str) -> "GateDecision":
        return cls(MUST_REPLY, reason, 1.0)

    @classmethod
    def probabilistic(cls, probability: float) -> "GateDecision":
        return cls(PROBABILISTIC, GROUP_CHAT, probability)

    @classmethod
    def suppress(cls, reason: str) -> "GateDecision":
        return cls(SUPPRESS, reason, 0.0)

    @property
    def is_suppressed(self) -> bool:
        return self.kind == SUPPRESS

    def __eq__(self, other):
        if not isinstance(other, GateDecision):
            return NotImplemented
        return (self.kind, self.reason, self.probability) == (other.kind, other.reason, other.probability)

    def __repr__(self):
        return f"GateDecision({self.kind!r}, {self.reason!r}, p={self.probability:.2f})"


class GateContext:
    """Facts about the inbound message the gate decides on."""

    def __init__(self, is_addressed: bool, is_new_participant: bool,
                 transcript_participants: int, active_participants: int):
        self.is_addressed = is_addressed
        self.is_new_participant = is_new_participant
        self.transcript_participants = transcript_participants  # includes the agent
        self.active_participants = active_participants  # recent humans


def is_addressed(text: str, names: Iterable[str], mentions_agent: bool = False) -> bool:
    """True if the message @mentions the agent or contains one of its names."""
    if mentions_agent:
        return True
    lowered = (text or "").lower()
    return any(name and name.lower() in lowered for name in names)


def reply_probability(active_count: int, factor: float = REPLY_CHANCE_FACTOR) -> float:
    """Chance of chiming into a group chat.

    Scales with the number of other humans present: min(1, factor / (n - 1)).
    A count of zero or one is treated as one so the divisor never hits zero.
    """
    others = max(1, active_count - 1)
    return max(0.0, min(1.0, factor / others))


def is_ignore_signal(text: Optional[str]) -> bool:
    """Exact match of the decline sentinel after trimming. Nothing looser."""
    if not isinstance(text, str):
        return False
    return text.strip() == IGNORE_SENTINEL


class ResponseGate:
    """Two-phase gate: before generation (addressing, novelty, chance) and
    after generation (the model's decline sentinel)."""

    def __init__(self, factor: float = REPLY_CHANCE_FACTOR, rng: random.Random = None):
        self.factor = factor
        self._rng = rng or random.Random()

    def decide(self, context: GateContext) -> GateDecision:
        """First match wins: new speaker, addressed, one-on-one, group chat."""
        if context.is_new_participant:
            return GateDecision.must_reply(NEW_PARTICIPANT)
        if context.is_addressed:
            return GateDecision.must_reply(ADDRESSED)
        if context.transcript_participants == 2:
            return GateDecision.must_reply(ONE_ON_ONE)
        return GateDecision.probabilistic(reply_probability(context.active_participants, self.factor))

    def should_generate(self, decision: GateDecision) -> bool:
        """Roll for probabilistic decisions. Must-reply always generates."""
        if decision.kind == MUST_REPLY:
            return True
        if decision.kind == SUPPRESS:
            return False
        return self._rng.random() < decision.probability

    def after_generation(self, decision: GateDecision, text: Optional[str]) -> GateDecision:
        """Override any decision to Suppress when the model declined."""
        if is_ignore_signal(text):
            return GateDecision.suppress(DECLINED)
        return decision

