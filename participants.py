"""
Guild Desk - Participant Tracking
Who has spoken recently in each channel.
"""

import time
from collections import defaultdict
from typing import Dict

from config import PARTICIPANT_TRACKING_DURATION


class ParticipantTracker:
    """Per-channel map of speaker id -> last time they spoke.

    Stale entries are evicted when counted, there is no background sweep.
    """

    def __init__(self, window: float = PARTICIPANT_TRACKING_DURATION):
        self.window = window
        self._seen: Dict[str, Dict[str, float]] = defaultdict(dict)

    def touch(self, channel_id, speaker_id, now: float = None):
        """Record that a speaker just talked in a channel."""
        self._seen[str(channel_id)][str(speaker_id)] = time.time() if now is None else now

    def active_count(self, channel_id, now: float = None, window: float = None) -> int:
        """Count speakers seen within the window, purging everyone older."""
        now = time.time() if now is None else now
        window = self.window if window is None else window
        speakers = self._seen.get(str(channel_id))
        if not speakers:
            return 0

        expired = [sid for sid, seen_at in speakers.items() if now - seen_at > window]
        for sid in expired:
            del speakers[sid]
        return len(speakers)

    def is_tracked(self, channel_id, speaker_id) -> bool:
        return str(speaker_id) in self._seen.get(str(channel_id), {})
