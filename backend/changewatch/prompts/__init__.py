"""LLM prompts and response schemas."""

from changewatch.prompts.change_classification import (
    CHANGE_CLASSIFICATION_PROMPT,
    CHANGE_CLASSIFICATION_SCHEMA,
    CLASSIFICATION_SYSTEM_PROMPT,
)
from changewatch.prompts.change_summary import (
    CHANGE_SUMMARY_PROMPT,
    CHANGE_SUMMARY_SCHEMA,
    CHANGE_SUMMARY_SYSTEM_PROMPT,
    NO_SIGNIFICANT_CHANGES,
    PREVIOUS_SUMMARY_BLOCK,
)

__all__ = [
    "CHANGE_CLASSIFICATION_PROMPT",
    "CHANGE_CLASSIFICATION_SCHEMA",
    "CLASSIFICATION_SYSTEM_PROMPT",
    "CHANGE_SUMMARY_PROMPT",
    "CHANGE_SUMMARY_SCHEMA",
    "CHANGE_SUMMARY_SYSTEM_PROMPT",
    "NO_SIGNIFICANT_CHANGES",
    "PREVIOUS_SUMMARY_BLOCK",
]
