"""
Train/validation segment split

Segments carrying an external train flag are split by that flag
(train_on=True -> test split, False -> validation split). Otherwise the
first ceil(n * test_ratio) segments, in their existing order, form the
test split. Flags that would leave either side empty are ignored in
favour of the positional split.

Positional splitting assumes segment order carries no temporal meaning;
when it does, later segments always land in validation.
"""

import math
from decimal import Decimal
from typing import List, Sequence, Tuple

from src.scorer.models import SegmentRecord

DEFAULT_TEST_RATIO = 0.8


def split_segments(
    segments: Sequence[SegmentRecord],
    test_ratio: float = DEFAULT_TEST_RATIO
) -> Tuple[List[SegmentRecord], List[SegmentRecord]]:
    """
    Returns:
        (test_segments, validation_segments)
    """
    segments = list(segments or [])

    if segments and all(s.train_on is not None for s in segments):
        test = [s for s in segments if s.train_on]
        validation = [s for s in segments if not s.train_on]
        if test and validation:
            return test, validation

    cut = math.ceil(Decimal(len(segments)) * Decimal(str(test_ratio)))
    return segments[:cut], segments[cut:]
