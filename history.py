"""
Guild Desk - Conversation History
Per-channel transcripts that expire after a period of silence.
"""

import copy
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from config import BOT_PERSONA_NAME, HISTORY_TIMEOUT

USER = "user"
AGENT = "agent"

AGENT_SPEAKER_ID = "agent"


@dataclass
class Turn:
    """One line of a channel transcript.

    Speaker identity lives in its own fields; the text is exactly what was
    said. Seeded turns come from the knowledge seed and never count as
    conversation participants.
    """
    role: str
    text: str
    speaker_id: Optional[str] = None
    speaker_name: Optional[str] = None
    seeded: bool = False

    @classmethod
    def user(cls, speaker_id, speaker_name: str, text: str, seeded: bool = False) -> "Turn":
        return cls(USER, text, str(speaker_id) if speaker_id is not None else None, speaker_name, seeded)

    @classmethod
    def agent(cls, text: str, seeded: bool = False, speaker_name: str = BOT_PERSONA_NAME) -> "Turn":
        return cls(AGENT, text, AGENT_SPEAKER_ID, speaker_name, seeded)


class ChannelTranscript:
    """Ordered turns of one channel plus the time of the last mutation."""

    def __init__(self, turns: List[Turn], last_mutation: float):
        self._turns = turns
        self.last_mutation = last_mutation

    @property
    def turns(self) -> Tuple[Turn, ...]:
        """Read-only view. Use HistoryStore.append to add turns."""
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def participants(self) -> Set[str]:
        """Speaker ids of everyone who has talked, including the agent."""
        speakers = {AGENT_SPEAKER_ID}
        for turn in self._turns:
            if turn.role == USER and not turn.seeded and turn.speaker_id:
                speakers.add(turn.speaker_id)
        return speakers

    def has_spoken(self, speaker_id) -> bool:
        return str(speaker_id) in self.participants()


class HistoryStore:
    """Owns every channel transcript of the process.

    Transcripts live only in memory and are lost on restart. Expiry is
    checked lazily whenever a transcript is fetched.
    """

    def __init__(self, timeout: float = HISTORY_TIMEOUT):
        self.timeout = timeout
        self._transcripts: Dict[str, ChannelTranscript] = {}

    def get(self, channel_id) -> Optional[ChannelTranscript]:
        return self._transcripts.get(str(channel_id))

    def is_expired(self, channel_id, timeout: float = None, now: float = None) -> bool:
        """True when the channel has no transcript or it has gone stale."""
        transcript = self.get(channel_id)
        if transcript is None:
            return True
        timeout = self.timeout if timeout is None else timeout
        now = time.time() if now is None else now
        return now - transcript.last_mutation > timeout

    def get_or_create(self, channel_id, seed_turns: Iterable[Turn], now: float = None) -> ChannelTranscript:
        """Return the live transcript, or start a fresh one from the seed.

        The seed is deep-copied so channels never share turn objects.
        """
        now = time.time() if now is None else now
        if self.is_expired(channel_id, now=now):
            transcript = ChannelTranscript(copy.deepcopy(list(seed_turns)), now)
            self._transcripts[str(channel_id)] = transcript
            return transcript
        return self._transcripts[str(channel_id)]

    def append(self, channel_id, turn: Turn, now: float = None):
        """Append a turn and refresh the channel's last-mutation time."""
        transcript = self._transcripts.get(str(channel_id))
        if transcript is None:
            raise KeyError(f"No transcript for channel {channel_id}")
        transcript._turns.append(turn)
        transcript.last_mutation = time.time() if now is None else now

    def record_exchange(self, channel_id, user_turn: Turn, agent_turn: Turn,
                        seed_turns: Iterable[Turn] = (), now: float = None):
        """Inject a completed action/reply pair (e.g. a menu button press)."""
        now = time.time() if now is None else now
        self.get_or_create(channel_id, seed_turns, now)
        self.append(channel_id, user_turn, now)
        self.append(channel_id, agent_turn, now)

    def clear(self, channel_id) -> bool:
        """Drop a channel's transcript. Returns True if one existed."""
        return self._transcripts.pop(str(channel_id), None) is not None

    def channel_count(self) -> int:
        return len(self._transcripts)
