"""Tests for the two-phase change job and its entry points."""

from unittest.mock import patch

import pytest

from changewatch import cli
from changewatch.config import Settings, get_settings
from changewatch.errors import ProviderConfigurationError
from changewatch.providers import ModelConfig, resolve_provider
from changewatch.services.pipeline import ChangePipeline, build_llm_client, run_changes_job


def route_by_schema(schema_name, messages):
    if schema_name == "ChangeSummary":
        return {"summary": "Endpoint /v1/orders removed"}
    return {"classification": "breaking", "explanation": "an endpoint is gone"}


def test_pipeline_classifies_changes_from_the_same_run(
    session, stub_llm, make_source, make_snapshot, changes_in_db
):
    source = make_source()
    make_snapshot(source.url, "orders api v1", days=0)
    make_snapshot(source.url, "orders api v2", days=1)
    llm = stub_llm(route_by_schema)

    summary = ChangePipeline(
        session=session,
        llm=llm,
        differ=ModelConfig("differ", 131000),
        classifier=ModelConfig("classifier", 131000),
    ).run()

    assert [call["schema_name"] for call in llm.calls] == ["ChangeSummary", "ChangeClassification"]
    change = changes_in_db()[0]
    assert change.diff == {"summary": "Endpoint /v1/orders removed"}
    assert change.classification == "breaking"
    assert summary["diffs"]["stored"] == 1
    assert summary["classification"]["classified"] == 1


def test_pipeline_with_nothing_to_do(session, stub_llm):
    llm = stub_llm(route_by_schema)

    summary = ChangePipeline(
        session=session,
        llm=llm,
        differ=ModelConfig("differ", 131000),
        classifier=ModelConfig("classifier", 131000),
    ).run()

    assert llm.calls == []
    assert summary["diffs"]["sources"] == 0
    assert summary["classification"]["pending"] == 0


def test_run_changes_job_requires_provider_key():
    settings = Settings(_env_file=None, llm_provider="scaleway", scaleway_api_key=None)

    with pytest.raises(ProviderConfigurationError):
        run_changes_job(settings)


def test_build_llm_client_applies_rate_limits():
    settings = Settings(
        _env_file=None,
        llm_provider="gemini",
        google_api_key="k",
        rate_limits={"gemini-2.0-flash": 10},
        default_rpm=20,
    )

    llm = build_llm_client(settings, resolve_provider(settings))

    assert llm.governor.min_interval("gemini-2.0-flash") == pytest.approx(6.0)
    assert llm.governor.min_interval("other") == pytest.approx(3.0)
    assert llm.timeout == settings.llm_timeout_seconds


class TestCli:
    @pytest.fixture(autouse=True)
    def quiet_logging(self):
        with patch("changewatch.cli.configure_logging"):
            yield

    def test_main_exits_zero_on_success(self):
        with patch("changewatch.cli.run_changes_job", return_value={}) as run:
            assert cli.main([]) == 0
        run.assert_called_once()

    def test_main_exits_non_zero_on_failure(self):
        with patch("changewatch.cli.run_changes_job", side_effect=ProviderConfigurationError("no key")):
            assert cli.main([]) == 1

    def test_invalid_environment_is_logged_not_raised(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        get_settings.cache_clear()
        try:
            with patch("changewatch.cli.run_changes_job") as run:
                assert cli.main([]) == 1
                assert cli.test_diff_main(["1", "2"]) == 1
        finally:
            get_settings.cache_clear()
        run.assert_not_called()

    def test_main_takes_no_flags(self):
        with pytest.raises(SystemExit):
            cli.main(["--dry-run"])

    def test_test_diff_passes_snapshot_ids(self):
        preview = {"snapshot_id1": 524, "snapshot_id2": 536}
        with patch("changewatch.cli.run_test_diff", return_value=preview) as run:
            assert cli.test_diff_main(["524", "536"]) == 0
        args = run.call_args.args
        assert args[1:] == (524, 536)

    def test_test_diff_without_summary_fails(self):
        with patch("changewatch.cli.run_test_diff", return_value=None):
            assert cli.test_diff_main(["1", "2"]) == 1

    def test_test_diff_error_fails(self):
        with patch("changewatch.cli.run_test_diff", side_effect=RuntimeError("db down")):
            assert cli.test_diff_main(["1", "2"]) == 1
