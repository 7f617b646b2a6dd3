"""Two-phase change job: compute diffs, then classify them.

Phase two starts only after phase one has finished and committed, so it
sees every change inserted in this run. Anything escaping the per-item
handlers of either phase aborts the run.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from changewatch.config import Settings
from changewatch.database import get_session_factory
from changewatch.providers import ModelConfig, ResolvedProvider, resolve_provider
from changewatch.services.classification import ChangeClassificationService
from changewatch.services.diff_computation import CompletionClient, DiffComputationService
from changewatch.services.llm_client import LLMClient
from changewatch.services.rate_governor import RateGovernor

logger = logging.getLogger(__name__)


@dataclass
class ChangePipeline:
    """Sequential diff-then-classify run over one session."""
    session: Session
    llm: CompletionClient
    differ: ModelConfig
    classifier: ModelConfig
    prompt_overhead_chars: int = 3000
    classifier_max_tokens: int = 150

    def run(self) -> dict:
        logger.info("----- 1. Starting diff computation...")
        diff_stats = DiffComputationService(
            self.session,
            self.llm,
            self.differ,
            prompt_overhead_chars=self.prompt_overhead_chars,
        ).compute_diffs()

        logger.info("----- 2. Starting classification...")
        classification_stats = ChangeClassificationService(
            self.session,
            self.llm,
            self.classifier,
            max_tokens=self.classifier_max_tokens,
        ).classify_changes()

        summary = {
            "diffs": diff_stats.to_dict(),
            "classification": classification_stats.to_dict(),
        }
        logger.info(f"Daily changes job completed: {summary}")
        return summary


def build_llm_client(settings: Settings, provider: ResolvedProvider) -> LLMClient:
    """Rate-governed client for the selected provider."""
    governor = RateGovernor(settings.rate_limits, default_rpm=settings.default_rpm)
    return LLMClient(provider, governor, timeout=settings.llm_timeout_seconds)


def run_changes_job(settings: Settings) -> dict:
    """Run both phases against the configured database and provider.

    Raises:
        ProviderConfigurationError: if the provider cannot be used
    """
    provider = resolve_provider(settings)
    llm = build_llm_client(settings, provider)

    session_factory = get_session_factory(settings)
    with session_factory() as session:
        return ChangePipeline(
            session=session,
            llm=llm,
            differ=provider.differ,
            classifier=provider.classifier,
            prompt_overhead_chars=settings.prompt_overhead_chars,
            classifier_max_tokens=settings.classifier_max_tokens,
        ).run()


def run_test_diff(settings: Settings, snapshot_id1: int, snapshot_id2: int) -> dict | None:
    """Dry-run the diff stage for one explicit snapshot pair."""
    provider = resolve_provider(settings)
    llm = build_llm_client(settings, provider)

    session_factory = get_session_factory(settings)
    with session_factory() as session:
        preview = DiffComputationService(
            session,
            llm,
            provider.differ,
            prompt_overhead_chars=settings.prompt_overhead_chars,
        ).test_diff(snapshot_id1, snapshot_id2)
        # Dry run: discard anything the session may hold
        session.rollback()
    return preview.to_dict() if preview else None
