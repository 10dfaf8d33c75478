# domain/enums.py
from __future__ import annotations

from enum import Enum


class TournamentStatus(str, Enum):
    UPCOMING = "upcoming"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class EntrantPolicy(str, Enum):
    FLOOR = "floor"     # odd/uneven counts: floor the match counts, last entrant unpaired
    STRICT = "strict"   # participant count must be a power of two


class RevisionPolicy(str, Enum):
    OVERWRITE = "overwrite"  # re-assign the next slot, leave later rounds alone
    FORBID = "forbid"        # a decided match cannot change winner
    CASCADE = "cascade"      # clear every descendant result built on the old winner
