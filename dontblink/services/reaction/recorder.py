import math
from typing import Dict, List, Optional


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ScoreRecorder:
    """Round latencies for one session.

    Only scored rounds are added; early clicks never reach the recorder.
    """

    def __init__(self, target_rounds: int):
        self.target_rounds = int(target_rounds)
        self.times: List[int] = []

    def add(self, ms: int) -> bool:
        if self.is_complete():
            return False
        self.times.append(int(ms))
        return True

    def average(self) -> int:
        if not self.times:
            raise ValueError('average() of an empty session')
        return round_half_up(sum(self.times) / len(self.times))

    def is_complete(self, target: Optional[int] = None) -> bool:
        if target is None:
            target = self.target_rounds
        return len(self.times) >= target

    def markers(self) -> List[Dict]:
        """Score dots: one per recorded round (newest flagged), then empty slots."""
        last = len(self.times) - 1
        filled = [{'ms': ms, 'new': i == last} for i, ms in enumerate(self.times)]
        empty = [{'ms': None, 'new': False} for _ in range(max(0, self.target_rounds - len(self.times)))]
        return filled + empty
