"""LLM-based classification of stored change summaries."""

import logging
from dataclasses import asdict, dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from changewatch.models import Change, ChangeClassification
from changewatch.prompts import (
    CHANGE_CLASSIFICATION_PROMPT,
    CHANGE_CLASSIFICATION_SCHEMA,
    CLASSIFICATION_SYSTEM_PROMPT,
)
from changewatch.providers import ModelConfig
from changewatch.repositories import PostgresChangeRepository, PostgresSourceRepository
from changewatch.services.diff_computation import CompletionClient, parse_json_response

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 150

UNKNOWN_SOURCE_URL = "an unknown source"


class ClassificationResult(BaseModel):
    """Validated classifier output."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    classification: ChangeClassification
    explanation: str = Field(min_length=1)


@dataclass
class ClassificationRunStats:
    """Counts per outcome for one classification run."""
    pending: int = 0
    classified: int = 0
    invalid_diff: int = 0
    invalid_response: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PendingChange:
    """Plain copy of an unclassified Change, safe to read after a rollback."""
    id: int
    source_id: int
    has_object_diff: bool
    summary: str

    @classmethod
    def from_model(cls, change: Change) -> "PendingChange":
        return cls(
            id=change.id,
            source_id=change.source_id,
            has_object_diff=isinstance(change.diff, dict),
            summary=change.summary,
        )


class ChangeClassificationService:
    """Classify unclassified changes into a closed vocabulary."""

    def __init__(
        self,
        session: Session,
        llm: CompletionClient,
        classifier: ModelConfig,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        self.session = session
        self.llm = llm
        self.classifier = classifier
        self.max_tokens = max_tokens
        self.sources = PostgresSourceRepository(session)
        self.changes = PostgresChangeRepository(session)

    def classify_changes(self) -> ClassificationRunStats:
        """Classify every change that has no classification yet.

        Each change is handled on its own; a bad row or a failed call is
        logged and the loop moves on.
        """
        stats = ClassificationRunStats()

        try:
            changes = [PendingChange.from_model(c) for c in self.changes.get_unclassified()]
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error fetching changes: {e}")
            return stats

        if not changes:
            logger.info("No unclassified changes to process")
            return stats
        stats.pending = len(changes)

        source_ids = sorted({c.source_id for c in changes})
        try:
            source_urls = self.sources.get_urls_by_ids(source_ids)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error fetching source URLs: {e}")
            return stats

        for change in changes:
            try:
                self._classify_one(change, source_urls.get(change.source_id), stats)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Error classifying change {change.id}: {e}")
                stats.failed += 1

        logger.info(f"Classification complete: {stats.to_dict()}")
        return stats

    def _classify_one(
        self,
        change: PendingChange,
        url: str | None,
        stats: ClassificationRunStats,
    ) -> None:
        change_id = change.id
        if not change.has_object_diff or not change.summary.strip():
            logger.error(
                f"Change {change_id} has invalid diff format; "
                f"expected a JSON object with a 'summary' field"
            )
            stats.invalid_diff += 1
            return

        if url is None:
            logger.warning(f"Change {change_id} references unknown source {change.source_id}")
            url = UNKNOWN_SOURCE_URL

        logger.info(f"Processing change {change_id} for {url}")
        result = self.classify_summary(change.summary, url)
        if result is None:
            stats.invalid_response += 1
            return

        logger.info(f"Classification for change {change_id}: {result.classification.value}")
        logger.info(f"Explanation: {result.explanation}")

        try:
            updated = self.changes.set_classification(
                change_id, result.classification.value, result.explanation
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error updating change {change_id}: {e}")
            stats.failed += 1
            return

        if not updated:
            logger.error(f"Change {change_id} disappeared before it could be classified")
            stats.failed += 1
            return

        logger.info(f"Classified change {change_id} as {result.classification.value}")
        stats.classified += 1

    def build_messages(self, summary: str, url: str) -> list[dict[str, str]]:
        prompt = CHANGE_CLASSIFICATION_PROMPT.format(
            url=url,
            summary=summary,
            allowed=ChangeClassification.values(),
        )
        return [
            {"role": "system", "content": CLASSIFICATION_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    def classify_summary(self, summary: str, url: str) -> ClassificationResult | None:
        """Classify one summary.

        Returns:
            The validated result, or None if the response was unusable.
            Provider errors propagate.
        """
        completion = self.llm.complete(
            model=self.classifier.model,
            messages=self.build_messages(summary, url),
            schema_name="ChangeClassification",
            schema=CHANGE_CLASSIFICATION_SCHEMA,
            max_tokens=self.max_tokens,
        )

        try:
            data = parse_json_response(completion.content)
            return ClassificationResult.model_validate(data)
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Invalid LLM response for {url}: {completion.content!r} ({e})")
            return None
