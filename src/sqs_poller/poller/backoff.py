"""
Module: backoff.py
Description: Visibility timeout backoff schedule.
"""

from typing import Sequence, Union

Number = Union[int, float]


def backoff(
    base_backoff_seconds: Number,
    receive_count: int,
    backoff_multipliers: Sequence[Number],
    max_backoff_seconds: Number
) -> Number:
    """
    Compute the visibility timeout for a failed delivery.

    The first min(receive_count, len(backoff_multipliers)) multipliers are
    applied cumulatively to the base, and the result is capped.

    Args:
        base_backoff_seconds: The queue's own visibility timeout
        receive_count: ApproximateReceiveCount of the delivery
        backoff_multipliers: Per-receive multiplication factors
        max_backoff_seconds: Upper bound for the result

    Returns:
        Visibility timeout in seconds

    Example:
        >>> backoff(10, 4, [1, 1, 1, 2, 2], 3600)
        20
    """
    end_index = max(0, min(receive_count, len(backoff_multipliers)))
    backoff_seconds = base_backoff_seconds
    for multiplier in backoff_multipliers[:end_index]:
        backoff_seconds *= multiplier
    return min(backoff_seconds, max_backoff_seconds)
