"""Snapshot content normalization and context budgeting.

Snapshots hold either a JSON document with an extracted ``textContent``
field or a raw string. Both sides of a diff are reduced to plain text and
head-truncated so that two texts plus the prompt fit a model's context.
"""

import json
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TEXT_FIELD = "textContent"

# Rough characters-per-token ratio
CHARS_PER_TOKEN = 4

# Prompt without texts is roughly this many characters
DEFAULT_PROMPT_OVERHEAD_CHARS = 3000


def extract_text(content: str | None) -> str:
    """Reduce snapshot content to plain text.

    JSON objects yield their ``textContent`` field (empty string if absent).
    Anything that is not JSON is already plain text and returned unchanged.
    """
    if content is None:
        return ""
    try:
        data = json.loads(content)
    except (ValueError, RecursionError):
        logger.debug("Snapshot content is not JSON, using it as raw text")
        return content

    if not isinstance(data, dict):
        return ""
    text = data.get(TEXT_FIELD)
    if text is None:
        return ""
    return text if isinstance(text, str) else str(text)


def estimate_tokens(text: str) -> int:
    return round(len(text) / CHARS_PER_TOKEN)


def max_chars_per_text(
    context_tokens: int,
    prompt_overhead_chars: int = DEFAULT_PROMPT_OVERHEAD_CHARS,
) -> int:
    """Character budget for each of the two texts in a diff prompt.

    The context window converted to characters, minus the prompt, split three
    ways so two texts never fill the whole window.
    """
    return round((context_tokens * CHARS_PER_TOKEN - prompt_overhead_chars) / 3)


def truncate_head(text: str, max_chars: int) -> str:
    """Keep the first ``max_chars`` characters of ``text``."""
    if len(text) <= max_chars:
        return text
    return text[:max(max_chars, 0)]


@dataclass
class BudgetedTexts:
    """Old/new texts after fitting them to the context budget."""
    old_text: str
    new_text: str
    max_chars: int
    old_truncated: bool = False
    new_truncated: bool = False


def budget_texts(
    old_text: str,
    new_text: str,
    context_tokens: int,
    prompt_overhead_chars: int = DEFAULT_PROMPT_OVERHEAD_CHARS,
) -> BudgetedTexts:
    """Head-truncate both texts to the per-text budget of a model."""
    max_chars = max_chars_per_text(context_tokens, prompt_overhead_chars)
    result = BudgetedTexts(
        old_text=truncate_head(old_text, max_chars),
        new_text=truncate_head(new_text, max_chars),
        max_chars=max_chars,
    )
    result.old_truncated = len(result.old_text) < len(old_text)
    result.new_truncated = len(result.new_text) < len(new_text)

    if result.old_truncated:
        logger.info(
            f"Old text was too long, trimmed to {len(result.old_text)} chars "
            f"(~{estimate_tokens(result.old_text)} tokens)"
        )
    if result.new_truncated:
        logger.info(
            f"New text was too long, trimmed to {len(result.new_text)} chars "
            f"(~{estimate_tokens(result.new_text)} tokens)"
        )
    return result
