"""First-match-wins evaluation of ordered extraction strategies."""

from collections.abc import Callable, Sequence
from typing import TypeVar

from kyc_ocr.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Strategy = Callable[[str], T | None]


def first_match(strategies: Sequence[Strategy], text: str) -> tuple[T | None, str | None]:
    """Evaluate strategies in order and return the first non-empty result.

    Args:
        strategies: Ordered pure functions ``text -> value | None``.
        text: Raw document text passed to every strategy.

    Returns:
        Tuple of (value, strategy_name); both ``None`` when every
        strategy misses.
    """
    for strategy in strategies:
        value = strategy(text)
        if value is not None and value != "":
            logger.debug("Strategy %s matched", strategy.__name__)
            return value, strategy.__name__
    return None, None
