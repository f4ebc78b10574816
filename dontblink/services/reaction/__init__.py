"""Reaction game domain services: rounds, recording, ranking, leaderboard.

Pure(ish) game logic lives here so that HTTP routes and socket handlers
stay thin transport layers over it.
"""

from .ranking import LeaderboardEntry, RankResult, RankedEntry, with_ranks, peek_rank, confirmed_rank
from .leaderboard import (
    Leaderboard,
    LeaderboardStore,
    LeaderboardStoreError,
    MemoryLeaderboardStore,
    RankOutcome,
    RankStatus,
    SqlLeaderboardStore,
)
from .recorder import ScoreRecorder
from .rounds import RoundScheduler, RoundSettings, RoundState
from .session import SessionController
from .prefs import PrefsStore
