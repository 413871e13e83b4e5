from pathlib import Path

import pytest
from pydantic import ValidationError

from firecrawl_local.config import ReadinessPolicy, SupervisorConfig


class TestReadinessPolicy:
    def test_converts_millis_to_seconds(self) -> None:
        policy = ReadinessPolicy(
            max_attempts=3, interval_millis=250, per_attempt_timeout_millis=1500
        )

        assert policy.interval == 0.25
        assert policy.per_attempt_timeout == 1.5

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValidationError):
            _ = ReadinessPolicy(max_attempts=0)

    def test_is_frozen(self) -> None:
        policy = ReadinessPolicy()

        with pytest.raises(ValidationError):
            policy.max_attempts = 5  # pyright: ignore[reportAttributeAccessIssue]


class TestSupervisorConfig:
    def test_derived_urls(self) -> None:
        config = SupervisorConfig(api_host="127.0.0.1", api_port=3100)

        assert config.api_base_url == "http://127.0.0.1:3100"
        assert config.readiness_url == "http://127.0.0.1:3100/test"

    def test_script_paths_are_under_backend_root(self) -> None:
        config = SupervisorConfig(backend_root=Path("/srv/firecrawl"))

        assert config.api_dir == Path("/srv/firecrawl/apps/api")
        assert config.worker_script == Path(
            "/srv/firecrawl/apps/api/dist/src/services/queue-worker.js"
        )
        assert config.api_script == Path("/srv/firecrawl/apps/api/dist/src/index.js")

    def test_default_policies(self) -> None:
        config = SupervisorConfig()

        assert config.broker_probe.max_attempts == 1
        assert config.broker_readiness.max_attempts == 10
        assert config.readiness.interval == 1.0

    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            _ = SupervisorConfig.model_validate({"restart_policy": "always"})
