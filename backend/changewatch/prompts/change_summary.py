"""Prompts for summarizing what changed between two captures of a page."""

NO_SIGNIFICANT_CHANGES = "No significant changes detected."

CHANGE_SUMMARY_SYSTEM_PROMPT = """
You are a helpful assistant that strictly follows instructions.
Do not repeat yourself.
Answer in 500 words or fewer. NEVER go above 2000 characters no matter what.
""".strip()

PREVIOUS_SUMMARY_BLOCK = """
The previous change summary for this page is below. These changes were already reported; do not repeat them:
-------
{previous_summary}
-------
"""

CHANGE_SUMMARY_PROMPT = """
<Task>
Compare the two texts below, captured from the documentation at {url}, and summarize the MEANINGFUL changes for a technical audience in a concise, human-readable way.
If no significant changes are found, put "{no_changes}" in the summary.
</Task>
<Context>
This page is most likely a changelog, release notes or API reference.
SIGNIFICANT changes include:
- Breaking changes
- Security updates
- Performance improvements
- New features, options or models
- New, moved or extended dates for migrations, sunsets, support windows or end of life
- Deprecations
- Renamed or removed fields
- Added or removed API endpoints
{previous_summary_block}
</Context>
<Rules>
Only report what the previous summary did not already cover.
Ignore formatting and whitespace differences; focus on content that was added, updated or removed.
Ignore the "last updated" date of the document.
Ignore marketing events and other promotional content.
Do not count items or events on the page.
If the page documents an API, report new or removed endpoints first.
If the same field is added or removed across several APIs at once, report it as a single change.
Both texts come from headless browser captures, so some variation can be scraping noise.
If no significant changes are found, put "{no_changes}" in the summary.
</Rules>
<Format>
Keep the summary to 500 words or fewer and NEVER above 2000 characters.
Respond with a JSON object containing only the "summary" key, whose value is the change summary as a string.
</Format>
Compare the following two texts now:
---------
<Old text>
{old_text}
</Old text>
---------
<New text>
{new_text}
</New text>
""".strip()

CHANGE_SUMMARY_SCHEMA = {
    "type": "object",
    "properties": {
        "summary": {"type": "string"},
    },
    "additionalProperties": False,
    "required": ["summary"],
}
