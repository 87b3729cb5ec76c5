"""AI market commentary: prompt templates and the requesting service."""

from market_pulse.commentary.prompts import (
    CommentaryInputs,
    build_prompt,
    format_ranges,
    role_title,
)
from market_pulse.commentary.service import (
    NO_RESPONSE_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    RETRY_LATER_MESSAGE,
    CommentaryService,
)

__all__ = [
    "CommentaryInputs",
    "CommentaryService",
    "build_prompt",
    "format_ranges",
    "role_title",
    "NOT_CONFIGURED_MESSAGE",
    "RETRY_LATER_MESSAGE",
    "NO_RESPONSE_MESSAGE",
]
