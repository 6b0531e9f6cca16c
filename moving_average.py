#!/usr/bin/env python3

import logging
from typing import List, Optional, Sequence

from series_normalizer import ChartPayload, Series, check_shape

logger = logging.getLogger(__name__)


def _check_window(window: int):
    # bool is an int subclass but never a meaningful window size
    if isinstance(window, bool) or not isinstance(window, int):
        raise ValueError(f"Window must be a positive integer, got {window!r}")
    if window < 1:
        raise ValueError(f"Window must be >= 1, got {window}")


def smooth(values: Sequence[Optional[float]], window: int) -> List[Optional[float]]:
    """
    Trailing simple moving average that skips nulls.

    Output index i averages the non-null entries of values[i - window + 1 .. i],
    clamped at the start of the sequence. A window with no non-null entries
    yields None. The average only looks backwards, so later points never
    affect earlier ones.

    Args:
        values: Numeric sequence with None for missing points
        window: Number of periods to average, >= 1

    Returns:
        List of the same length as values
    """
    _check_window(window)

    result = []
    for i in range(len(values)):
        window_values = [v for v in values[max(0, i - window + 1):i + 1] if v is not None]

        if not window_values:
            result.append(None)
        else:
            result.append(sum(window_values) / len(window_values))

    return result


def smooth_payload(payload: ChartPayload, window: int) -> ChartPayload:
    """Smooth every series of a chart independently with the same window."""
    _check_window(window)
    check_shape(payload)

    smoothed = [Series(label=s.label, values=smooth(s.values, window)) for s in payload.series]
    logger.debug(f"Smoothed {len(smoothed)} series with window {window}")

    return ChartPayload(labels=payload.labels, series=smoothed)
