"""Business logic services."""

from changewatch.services.classification import ChangeClassificationService
from changewatch.services.diff_computation import DiffComputationService
from changewatch.services.duplicate_guard import DuplicateGuard
from changewatch.services.llm_client import Completion, LLMClient
from changewatch.services.pipeline import ChangePipeline, run_changes_job
from changewatch.services.rate_governor import RateGovernor

__all__ = [
    "ChangeClassificationService",
    "DiffComputationService",
    "DuplicateGuard",
    "Completion",
    "LLMClient",
    "ChangePipeline",
    "run_changes_job",
    "RateGovernor",
]
