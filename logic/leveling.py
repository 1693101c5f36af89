# backend/logic/leveling.py

import math
from dataclasses import dataclass, replace
from datetime import datetime

MAX_LEVEL = 100

# Completions faster than this are treated as implausible and get a flat reward
FAST_COMPLETION_MINUTES = 4
FAST_COMPLETION_XP = 1

# (upper bound in minutes, inclusive) -> multiplier
TIME_MULTIPLIERS = (
    (10, 0.3),
    (30, 1.0),
    (60, 1.5),
)
LONG_COMPLETION_MULTIPLIER = 2.0


class InvalidArgument(ValueError):
    pass


@dataclass(frozen=True)
class UserProgress:
    level: int = 0
    experience: int = 0
    experience_to_next: int = 100
    completed_task_lists: int = 0


INITIAL_PROGRESS = UserProgress()


def experience_threshold_for_level(level: int) -> int:
    return level * 100 + (level - 1) * 50


def apply_experience(progress: UserProgress, xp_gained: int) -> UserProgress:
    """
    Add xp_gained to progress and resolve every level-up it triggers.
    Returns a new UserProgress; completed_task_lists is passed through.
    """
    if xp_gained < 0:
        raise InvalidArgument(f"xp_gained must be non-negative, got {xp_gained}")

    new_experience = progress.experience + xp_gained
    new_level = progress.level
    remaining = progress.experience_to_next - xp_gained

    while remaining <= 0 and new_level < MAX_LEVEL:
        new_level += 1
        remaining = experience_threshold_for_level(new_level + 1) - new_experience

    return replace(
        progress,
        level=new_level,
        experience=new_experience,
        experience_to_next=max(0, remaining),
    )


def base_reward(task_count: int) -> int:
    if task_count < 0:
        raise InvalidArgument(f"task_count must be non-negative, got {task_count}")
    return max(20, task_count * 5)


def time_multiplier(completion_time_minutes) -> float:
    for upper, multiplier in TIME_MULTIPLIERS:
        if completion_time_minutes <= upper:
            return multiplier
    return LONG_COMPLETION_MULTIPLIER


def reward_for_completion(task_count: int, completion_time_minutes: int) -> int:
    if completion_time_minutes < 0:
        raise InvalidArgument(
            f"completion_time_minutes must be non-negative, got {completion_time_minutes}"
        )

    base_xp = base_reward(task_count)

    if completion_time_minutes < FAST_COMPLETION_MINUTES:
        return FAST_COMPLETION_XP

    return math.floor(base_xp * time_multiplier(completion_time_minutes))


def elapsed_minutes(started_at: datetime, finished_at: datetime) -> int:
    # Rounds half up, like the client timers this replaces
    seconds = (finished_at - started_at).total_seconds()
    return max(0, math.floor(seconds / 60 + 0.5))
