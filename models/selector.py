"""Package source selector and its validation."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from engine.errors import InvalidSelectorError

logger = logging.getLogger(__name__)


class Selector(str, Enum):
    """Which source the package dependency should point at."""

    MAIN = "main"
    BETA = "beta"
    BRANCH = "branch"
    LOCAL = "local"

    @property
    def requires_repository(self) -> bool:
        """Whether resolving this selector needs the local git checkout."""
        return self in (Selector.BRANCH, Selector.LOCAL)

    @classmethod
    def choices(cls) -> list[str]:
        return [member.value for member in cls]


def parse_selector(raw: Optional[str]) -> Selector:
    """Parse a selector argument.

    Args:
        raw: The argument as typed, possibly None or padded with whitespace.

    Returns:
        The matching Selector. Matching is case-sensitive.

    Raises:
        InvalidSelectorError: If the trimmed value is not a known selector.
    """
    value = (raw or "").strip()
    try:
        return Selector(value)
    except ValueError as e:
        raise InvalidSelectorError(raw, Selector.choices()) from e


def prompt_for_selector(
    raw: Optional[str],
    ask: Optional[Callable[[str], str]] = None,
    max_attempts: int = 3,
) -> Selector:
    """Parse a selector, asking again interactively while it is invalid.

    Args:
        raw: The initial argument value.
        ask: Prompt function returning the user's answer, defaults to input().
        max_attempts: How many answers to accept before giving up.

    Returns:
        The first valid Selector.

    Raises:
        InvalidSelectorError: If every answer was invalid or input closed.
    """
    ask = ask or input
    try:
        return parse_selector(raw)
    except InvalidSelectorError as e:
        last_error = e

    prompt = f"Which package source? [{'/'.join(Selector.choices())}]: "
    for _ in range(max_attempts):
        if last_error.value:
            print(str(last_error))
        try:
            answer = ask(prompt)
        except EOFError:
            logger.debug("Input closed while prompting for selector")
            raise last_error
        try:
            return parse_selector(answer)
        except InvalidSelectorError as e:
            last_error = e

    raise last_error
