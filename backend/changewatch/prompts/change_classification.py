"""Prompt for classifying a stored change summary."""

from changewatch.models.change import ChangeClassification

CLASSIFICATION_SYSTEM_PROMPT = (
    "You are a helpful assistant that strictly follows instructions "
    "and provides structured JSON responses."
)

CHANGE_CLASSIFICATION_PROMPT = """
Below is a change summary for the documentation at {url}:

Change:
{summary}

Classify the change as one of: breaking change, security update, performance improvement, new feature, minor bug fix, or other. Briefly explain your choice.
Respond with a JSON object containing exactly two fields: "classification" and "explanation".
The "classification" field must be one of: {allowed}.
The "explanation" field must be a concise string justifying the classification.
""".strip()

CHANGE_CLASSIFICATION_SCHEMA = {
    "type": "object",
    "properties": {
        "classification": {
            "type": "string",
            "enum": ChangeClassification.values(),
        },
        "explanation": {"type": "string"},
    },
    "additionalProperties": False,
    "required": ["classification", "explanation"],
}
