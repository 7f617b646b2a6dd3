"""LLM-based change summaries between the two latest snapshots of a source.

For every active source the two most recent snapshots are normalized to
plain text, fitted to the differ model's context, and summarized by the LLM
with the previous summary as memory. Significant summaries are stored as a
Change unless that exact snapshot pair was already recorded.
"""

import enum
import json
import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from changewatch.errors import SnapshotNotFoundError
from changewatch.models import Change
from changewatch.prompts import (
    CHANGE_SUMMARY_PROMPT,
    CHANGE_SUMMARY_SCHEMA,
    CHANGE_SUMMARY_SYSTEM_PROMPT,
    NO_SIGNIFICANT_CHANGES,
    PREVIOUS_SUMMARY_BLOCK,
)
from changewatch.providers import ModelConfig
from changewatch.repositories import (
    PostgresChangeRepository,
    PostgresSnapshotRepository,
    PostgresSourceRepository,
)
from changewatch.services.content import (
    DEFAULT_PROMPT_OVERHEAD_CHARS,
    budget_texts,
    estimate_tokens,
    extract_text,
)
from changewatch.services.duplicate_guard import DuplicateGuard
from changewatch.services.llm_client import Completion

logger = logging.getLogger(__name__)

# Longest summary kept when salvaging a length-truncated response
MAX_SALVAGED_SUMMARY_CHARS = 40000

TRUNCATED_SUMMARY_FALLBACK = (
    "Content changes detected, but the summary was too long to process completely."
)
PARSE_ERROR_SUMMARY = "Error parsing change summary response."

_SUMMARY_VALUE = re.compile(r'"summary"\s*:\s*"((?:[^"\\]|\\.)*)')


class CompletionClient(Protocol):
    def complete(
        self,
        model: str,
        messages: list[dict[str, str]],
        schema_name: str,
        schema: dict[str, Any],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion: ...


class DiffOutcome(str, enum.Enum):
    """What happened to one source during a run."""

    STORED = "stored"
    NOT_ENOUGH_SNAPSHOTS = "not_enough_snapshots"
    NO_SUMMARY = "no_summary"
    NOT_SIGNIFICANT = "not_significant"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class DiffRunStats:
    """Counts per outcome for one diff computation run."""
    sources: int = 0
    stored: int = 0
    not_enough_snapshots: int = 0
    no_summary: int = 0
    not_significant: int = 0
    duplicate: int = 0
    failed: int = 0

    def record(self, outcome: DiffOutcome) -> None:
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DiffPreview:
    """The change a dry run would store."""
    source_id: int
    snapshot_id1: int
    snapshot_id2: int
    diff: dict[str, str]
    significant: bool

    def to_dict(self) -> dict:
        return asdict(self)


def parse_json_response(response: str) -> Any:
    """Parse JSON from LLM response, handling code fences."""
    content = response.strip()

    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1:]
        if content.endswith("```"):
            content = content[:-3].rstrip()

    return json.loads(content)


def salvage_truncated_summary(
    raw: str | None,
    max_chars: int = MAX_SALVAGED_SUMMARY_CHARS,
) -> str:
    """Recover the partial ``summary`` value from a cut-off JSON response.

    Scans for ``"summary": "...`` and keeps everything up to the closing
    quote or the end of the text. Returns an empty string when nothing
    can be recovered.
    """
    if not raw:
        return ""
    match = _SUMMARY_VALUE.search(raw)
    if not match:
        return ""

    fragment = match.group(1)
    try:
        text = json.loads(f'"{fragment}"')
    except ValueError:
        # Cut inside an escape sequence such as \u00
        text = fragment
    text = text.strip()

    if len(text) > max_chars:
        text = text[:max_chars] + "..."
    return text


def is_significant(summary: Any) -> bool:
    """Whether a summary describes a change worth storing."""
    if not isinstance(summary, str) or not summary.strip():
        return False
    return "no significant changes" not in summary.lower()


class DiffComputationService:
    """Summarize and store changes between consecutive snapshots."""

    def __init__(
        self,
        session: Session,
        llm: CompletionClient,
        differ: ModelConfig,
        prompt_overhead_chars: int = DEFAULT_PROMPT_OVERHEAD_CHARS,
    ):
        self.session = session
        self.llm = llm
        self.differ = differ
        self.prompt_overhead_chars = prompt_overhead_chars
        self.sources = PostgresSourceRepository(session)
        self.snapshots = PostgresSnapshotRepository(session)
        self.changes = PostgresChangeRepository(session)
        self.duplicate_guard = DuplicateGuard(session)

    def compute_diffs(self) -> DiffRunStats:
        """Process every active source once, sequentially.

        Failures are contained per source; the loop always reaches the end.
        """
        stats = DiffRunStats()

        try:
            sources = self.sources.get_active()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error fetching sources: {e}")
            return stats

        logger.info(f"Computing diffs for {len(sources)} active sources")
        stats.sources = len(sources)

        # A rollback expires every loaded instance; only plain values are used below
        targets = [(source.id, source.url) for source in sources]

        for source_id, url in targets:
            try:
                outcome = self.process_source(source_id, url)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Diff computation failed for {url}: {e}")
                outcome = DiffOutcome.FAILED
            stats.record(outcome)

        logger.info(f"Diff computation complete: {stats.to_dict()}")
        return stats

    def process_source(self, source_id: int, url: str) -> DiffOutcome:
        """Summarize the latest transition of one source and store it if new."""
        try:
            snapshots = self.snapshots.get_latest(url, limit=2)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error fetching snapshots for {url}: {e}")
            return DiffOutcome.FAILED

        if len(snapshots) < 2:
            logger.info(f"Skipping {url}: fewer than 2 snapshots")
            return DiffOutcome.NOT_ENOUGH_SNAPSHOTS

        snapshot_new, snapshot_old = snapshots
        old_id, new_id = snapshot_old.id, snapshot_new.id
        logger.info(f"Processing snapshot {old_id} vs snapshot {new_id} for {url}")

        budgeted = budget_texts(
            extract_text(snapshot_old.content),
            extract_text(snapshot_new.content),
            self.differ.context_tokens,
            self.prompt_overhead_chars,
        )
        previous_summary = self._previous_summary(source_id)

        diff = self.get_change_summary(
            budgeted.old_text,
            budgeted.new_text,
            url,
            previous_summary,
        )
        if not diff or not diff.get("summary"):
            logger.info(f"Could not get a summary for {url}")
            return DiffOutcome.NO_SUMMARY

        summary = diff["summary"]
        if not is_significant(summary):
            logger.info(f"No significant changes detected for {url}")
            return DiffOutcome.NOT_SIGNIFICANT

        if self.duplicate_guard.exists(old_id, new_id):
            logger.info(f"Diff already exists for {url} between snapshots {old_id} and {new_id}")
            return DiffOutcome.DUPLICATE

        try:
            self.changes.save(Change(
                source_id=source_id,
                snapshot_id1=old_id,
                snapshot_id2=new_id,
                diff={"summary": summary},
                timestamp=datetime.now(timezone.utc),
            ))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error storing diff for {url}: {e}")
            return DiffOutcome.FAILED

        logger.info(f"Diff stored for {url}")
        return DiffOutcome.STORED

    def _previous_summary(self, source_id: int) -> str:
        """Summary of the latest change for a source, used as prompt memory."""
        try:
            latest = self.changes.get_latest_for_source(source_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.warning(f"Could not load previous summary for source {source_id}: {e}")
            return ""
        return latest.summary if latest else ""

    def build_messages(
        self,
        old_text: str,
        new_text: str,
        url: str,
        previous_summary: str = "",
    ) -> list[dict[str, str]]:
        previous_block = ""
        if previous_summary:
            previous_block = PREVIOUS_SUMMARY_BLOCK.format(previous_summary=previous_summary)

        user_prompt = CHANGE_SUMMARY_PROMPT.format(
            url=url,
            no_changes=NO_SIGNIFICANT_CHANGES,
            previous_summary_block=previous_block,
            old_text=old_text,
            new_text=new_text,
        )
        return [
            {"role": "system", "content": CHANGE_SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    def get_change_summary(
        self,
        old_text: str,
        new_text: str,
        url: str,
        previous_summary: str = "",
    ) -> dict[str, Any] | None:
        """Ask the differ model what changed.

        Returns:
            Dict with a "summary" key, or None when the call itself failed
        """
        messages = self.build_messages(old_text, new_text, url, previous_summary)
        logger.info(f"Sending diff request to {self.differ.model} (prompt length {len(messages[1]['content'])})")

        try:
            completion = self.llm.complete(
                model=self.differ.model,
                messages=messages,
                schema_name="ChangeSummary",
                schema=CHANGE_SUMMARY_SCHEMA,
                temperature=0,
            )
        except Exception as e:
            logger.error(f"Error getting LLM summary for {url}: {e}")
            return None

        logger.info(f"Finish reason: {completion.finish_reason}")

        if completion.truncated:
            logger.warning(f"Summary for {url} was truncated due to length, salvaging partial text")
            salvaged = salvage_truncated_summary(completion.content)
            return {"summary": salvaged or TRUNCATED_SUMMARY_FALLBACK}

        try:
            data = parse_json_response(completion.content)
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(f"Error parsing JSON response for {url}: {e}")
            return {"summary": PARSE_ERROR_SUMMARY}

        if not isinstance(data, dict):
            logger.error(f"Unexpected summary response for {url}: {data!r}")
            return {}
        return data

    def test_diff(self, snapshot_id1: int, snapshot_id2: int) -> DiffPreview | None:
        """Dry run against an explicit snapshot pair with step-by-step logging.

        Nothing is written; only the duplicate check touches the changes table.

        Returns:
            The change that would be stored, or None when the source is
            unknown, no summary came back, or the pair is already recorded

        Raises:
            SnapshotNotFoundError: if either snapshot does not exist
        """
        logger.info("=== STARTING TEST DIFF PROCESS ===")
        logger.info(f"Processing snapshots {snapshot_id1} vs {snapshot_id2}")

        logger.info("1. Fetching snapshots...")
        snapshots = self.snapshots.get_by_ids([snapshot_id1, snapshot_id2])
        if len(snapshots) != 2:
            found = [s.id for s in snapshots]
            raise SnapshotNotFoundError(
                f"Expected snapshots {snapshot_id1} and {snapshot_id2}, found {found}"
            )

        # Lower id is the older capture
        snapshot_old, snapshot_new = snapshots
        url, old_id, new_id = snapshot_old.url, snapshot_old.id, snapshot_new.id
        logger.info(f"2. Retrieved snapshots for URL: {url}")
        logger.info(f"   Old snapshot ID: {old_id}, New snapshot ID: {new_id}")

        logger.info("3. Extracting text content...")
        old_text = extract_text(snapshot_old.content)
        new_text = extract_text(snapshot_new.content)
        logger.info(f"   Old text length: {len(old_text)} chars (~{estimate_tokens(old_text)} tokens)")
        logger.info(f"   New text length: {len(new_text)} chars (~{estimate_tokens(new_text)} tokens)")

        budgeted = budget_texts(
            old_text, new_text, self.differ.context_tokens, self.prompt_overhead_chars
        )
        logger.info(f"   Allowed up to {budgeted.max_chars} chars per text")

        logger.info("4. Finding source for URL...")
        source = self.sources.get_active_by_url(url)
        if source is None:
            logger.error(f"Source not found or inactive for {url}")
            return None
        source_id = source.id
        logger.info(f"   Found source ID: {source_id}")

        logger.info("5. Checking for previous summaries...")
        previous_summary = self._previous_summary(source_id)
        logger.info(f"   Previous summary exists: {bool(previous_summary)}")

        logger.info("6. Generating LLM summary...")
        diff = self.get_change_summary(
            budgeted.old_text, budgeted.new_text, url, previous_summary
        )
        if diff is None:
            logger.error("   Aborting - LLM summary generation failed completely")
            return None
        summary = diff.get("summary")
        if not isinstance(summary, str) or not summary:
            logger.error(f"   Aborting - LLM returned response but summary is missing: {diff}")
            return None
        logger.info(f"   Summary generated ({len(summary)} chars): {summary[:100]}...")

        logger.info("7. Checking for existing diff...")
        if self.duplicate_guard.exists(old_id, new_id):
            logger.info(f"   Diff already exists for snapshots {old_id} and {new_id}, nothing would be stored")
            logger.info("=== TEST PROCESS COMPLETE ===")
            return None

        preview = DiffPreview(
            source_id=source_id,
            snapshot_id1=old_id,
            snapshot_id2=new_id,
            diff={"summary": summary},
            significant=is_significant(summary),
        )
        logger.info("8. Diff that would be stored:")
        logger.info(json.dumps(preview.to_dict(), indent=2))

        logger.info("=== TEST PROCESS COMPLETE ===")
        return preview
