import sys
from pathlib import Path

from firecrawl_local.config import SupervisorConfig
from firecrawl_local.supervisor import (
    StageName,
    build_stages,
    check_backend,
    create_api_spec,
    create_broker_spec,
    create_worker_specs,
)


class TestCreateBrokerSpec:
    def test_listens_on_the_broker_url_port(self) -> None:
        config = SupervisorConfig(broker_url="redis://localhost:6390")

        spec = create_broker_spec(config)

        assert spec.name == "broker"
        assert spec.command == ("redis-server", "--port", "6390")

    def test_custom_executable(self) -> None:
        config = SupervisorConfig(broker_executable="/opt/redis/bin/redis-server")

        assert create_broker_spec(config).command[0] == "/opt/redis/bin/redis-server"


class TestCreateWorkerSpecs:
    def test_single_worker_is_unnumbered(self, tmp_path: Path) -> None:
        specs = create_worker_specs(SupervisorConfig(backend_root=tmp_path))

        assert [spec.name for spec in specs] == ["worker"]
        assert specs[0].command == (
            "node",
            str(tmp_path / "apps/api/dist/src/services/queue-worker.js"),
        )
        assert specs[0].cwd == tmp_path / "apps" / "api"

    def test_several_workers_are_numbered(self, tmp_path: Path) -> None:
        specs = create_worker_specs(
            SupervisorConfig(backend_root=tmp_path, worker_count=3)
        )

        assert [spec.name for spec in specs] == ["worker-1", "worker-2", "worker-3"]

    def test_workers_receive_the_broker_url(self) -> None:
        config = SupervisorConfig(broker_url="redis://cache:6379")

        (spec,) = create_worker_specs(config)

        assert spec.env == {"REDIS_URL": "redis://cache:6379"}


class TestCreateApiSpec:
    def test_environment(self, tmp_path: Path) -> None:
        config = SupervisorConfig(
            backend_root=tmp_path, api_port=4000, broker_url="redis://localhost:6390"
        )

        spec = create_api_spec(config)

        assert spec.name == "api"
        assert spec.command == ("node", str(tmp_path / "apps/api/dist/src/index.js"))
        assert spec.env == {"REDIS_URL": "redis://localhost:6390", "PORT": "4000"}


class TestBuildStages:
    def test_stages_in_startup_order(self, tmp_path: Path) -> None:
        stages = build_stages(SupervisorConfig(backend_root=tmp_path, worker_count=2))

        assert [stage.name for stage in stages] == [
            StageName.BROKER,
            StageName.WORKERS,
            StageName.API,
        ]
        assert [len(stage.specs) for stage in stages] == [1, 2, 1]


class TestCheckBackend:
    def test_missing_everything(self, tmp_path: Path) -> None:
        config = SupervisorConfig(
            backend_root=tmp_path,
            broker_executable="no-such-redis-server",
            node_executable="no-such-node",
        )

        checks = check_backend(config)

        assert [check.name for check in checks] == [
            "broker executable",
            "node executable",
            "worker script",
            "api script",
        ]
        assert not any(check.ok for check in checks)
        assert "not found on PATH" in checks[0].detail
        assert "build Firecrawl first" in checks[3].detail

    def test_all_present(self, tmp_path: Path) -> None:
        config = SupervisorConfig(
            backend_root=tmp_path,
            broker_executable=sys.executable,
            node_executable=sys.executable,
        )
        for script in (config.worker_script, config.api_script):
            script.parent.mkdir(parents=True, exist_ok=True)
            _ = script.write_text("")

        checks = check_backend(config)

        assert all(check.ok for check in checks)
        assert checks[2].detail == str(config.worker_script)
