"""
Unit tests for the deploy pipeline.

Every step runs against FakeExecutor; the settle delay is replaced by a
no-op sleep so rollouts do not wait.
"""

import pytest

from hostdeploy.constants import (
    EXIT_CONNECTIVITY_FAILURE,
    EXIT_PROVISION_FAILURE,
    EXIT_PROXY_CONFIG_FAILURE,
    EXIT_ROLLOUT_FAILURE,
    EXIT_TRANSFER_FAILURE,
    SSH_CONNECTION_TIMEOUT,
)
from hostdeploy.core.containers import match_running_container
from hostdeploy.core.pipeline import DeployPipeline
from hostdeploy.exceptions import (
    ConnectivityError,
    ProvisionError,
    ProxyConfigError,
    RolloutError,
    SourceError,
    SSHError,
    TransferError,
)
from hostdeploy.models.deployment import DeploymentRecord
from hostdeploy.models.results import SSHResult

from tests.conftest import CONTAINER, FakeSource


def make_pipeline(executor, facts, logger, tmp_path):
    slept = []
    pipeline = DeployPipeline(
        executor,
        FakeSource(facts),
        logger,
        tmp_path / "deployment.env",
        settle_delay=5,
        sleep=slept.append,
    )
    return pipeline, slept


@pytest.fixture
def running_executor(executor):
    """Executor where the container shows up after rollout."""
    return executor.on("docker ps --format", stdout=f"{CONTAINER}\n")


class TestPipelineOrder:
    """Step ordering and fail-fast behaviour"""

    def test_all_steps_complete_in_order(self, running_executor, params, facts, logger, tmp_path):
        pipeline, slept = make_pipeline(running_executor, facts, logger, tmp_path)

        assert pipeline.run(params) is facts

        assert pipeline.completed_steps == [
            "Resolving source",
            "Testing SSH connectivity",
            "Provisioning remote host",
            "Transferring files",
            "Rolling out container",
            "Configuring reverse proxy",
            "Saving deployment information",
        ]
        assert slept == [5]

    def test_source_failure_stops_before_any_remote_command(self, executor, params, facts, logger, tmp_path):
        class BrokenSource:
            def resolve(self, params):
                raise SourceError("Failed to clone repository")

        pipeline = DeployPipeline(executor, BrokenSource(), logger, tmp_path / "deployment.env")

        with pytest.raises(SourceError) as exc_info:
            pipeline.run(params)

        assert exc_info.value.exit_code == 1
        assert executor.calls == []
        assert pipeline.completed_steps == []

    def test_failure_is_written_to_the_log(self, executor, params, facts, logger, tmp_path):
        executor.on("echo 'SSH connection successful'", returncode=255, stderr="Permission denied")
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        with pytest.raises(ConnectivityError):
            pipeline.run(params)

        assert "Failed to establish SSH connection" in logger.log_path.read_text()


class TestConnectivity:
    """Step 2"""

    def test_probe_uses_batch_mode_and_short_timeout(self, running_executor, params, facts, logger, tmp_path):
        pipeline, _ = make_pipeline(running_executor, facts, logger, tmp_path)

        pipeline.check_connectivity(params, facts)

        options = running_executor.options[0]
        assert options.batch is True
        assert options.timeout == SSH_CONNECTION_TIMEOUT

    def test_missing_ssh_binary_aborts_with_code_2(self, executor, params, facts, logger, tmp_path):
        def no_ssh(command, options=None):
            raise SSHError("Could not run ssh: No such file or directory")

        executor.run = no_ssh
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        with pytest.raises(ConnectivityError) as exc_info:
            pipeline.run(params)

        assert exc_info.value.exit_code == EXIT_CONNECTIVITY_FAILURE
        assert pipeline.completed_steps == ["Resolving source"]

    def test_refused_connection_aborts_with_code_2(self, executor, params, facts, logger, tmp_path):
        executor.on("echo 'SSH connection successful'", returncode=255)
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        with pytest.raises(ConnectivityError) as exc_info:
            pipeline.run(params)

        assert exc_info.value.exit_code == EXIT_CONNECTIVITY_FAILURE
        assert not executor.ran("command -v")
        assert executor.transfers == []

    def test_timeout_aborts_with_code_2(self, executor, params, facts, logger, tmp_path):
        executor.on("echo 'SSH connection successful'", returncode=124, timed_out=True)
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        with pytest.raises(ConnectivityError, match="Timed out"):
            pipeline.check_connectivity(params, facts)


class TestProvisioning:
    """Step 3"""

    def test_present_tools_are_not_reinstalled(self, executor, params, facts, logger, tmp_path):
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        pipeline.provision_host(params, facts)

        assert not executor.ran("apt-get install")
        assert not executor.ran("apt-get update")
        assert executor.ran("usermod -aG docker ubuntu")
        assert executor.ran("systemctl restart nginx")

    def test_missing_tools_are_installed(self, executor, params, facts, logger, tmp_path):
        executor.on("command -v", returncode=1)
        executor.on("find /var/lib/apt/lists", returncode=1)
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        pipeline.provision_host(params, facts)

        assert executor.ran("sudo apt-get update -y")
        assert executor.ran("docker-ce")
        assert executor.ran("/usr/local/bin/docker-compose")
        assert executor.ran("apt-get install -y nginx")

    def test_failed_install_aborts_with_code_6(self, executor, params, facts, logger, tmp_path):
        executor.on("command -v nginx", returncode=1)
        executor.on("apt-get install -y nginx", returncode=100, stderr="E: Unable to locate package")
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        with pytest.raises(ProvisionError) as exc_info:
            pipeline.provision_host(params, facts)

        assert exc_info.value.exit_code == EXIT_PROVISION_FAILURE
        assert "nginx" in exc_info.value.message
        assert "Unable to locate package" in exc_info.value.context


class TestTransfer:
    """Step 4"""

    def test_files_go_to_remote_deployment_dir(self, executor, params, facts, logger, tmp_path):
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        pipeline.transfer_artifacts(params, facts)

        assert executor.ran("mkdir -p deployments/Demo-App")
        local_dir, remote_dir, excludes = executor.transfers[0]
        assert local_dir == facts.local_path
        assert remote_dir == "deployments/Demo-App"
        assert ".git" in excludes

    def test_rsync_failure_aborts_with_code_3(self, running_executor, params, facts, logger, tmp_path):
        running_executor.transfer_result = SSHResult(returncode=23, stderr="rsync error")
        pipeline, _ = make_pipeline(running_executor, facts, logger, tmp_path)

        with pytest.raises(TransferError) as exc_info:
            pipeline.run(params)

        assert exc_info.value.exit_code == EXIT_TRANSFER_FAILURE
        assert not running_executor.ran("docker build")

    def test_missing_rsync_aborts_with_code_3(self, running_executor, params, facts, logger, tmp_path):
        def no_rsync(local_dir, remote_dir, excludes=()):
            raise SSHError("Could not run rsync: No such file or directory", "Host: 203.0.113.10")

        running_executor.transfer = no_rsync
        pipeline, _ = make_pipeline(running_executor, facts, logger, tmp_path)

        with pytest.raises(TransferError) as exc_info:
            pipeline.run(params)

        assert exc_info.value.exit_code == EXIT_TRANSFER_FAILURE
        assert isinstance(exc_info.value.__cause__, SSHError)
        assert "Could not run rsync" in logger.log_path.read_text()
        assert "Transferring files" not in pipeline.completed_steps


class TestRollout:
    """Step 5"""

    def test_dockerfile_builds_and_runs_single_container(self, running_executor, params, facts, logger, tmp_path):
        pipeline, _ = make_pipeline(running_executor, facts, logger, tmp_path)

        pipeline.roll_out_container(params, facts)

        assert running_executor.ran("docker build -t demo-app .")
        assert running_executor.ran("docker run -d --name demo-app -p 8080:8080 demo-app")
        assert not running_executor.ran("docker-compose")

    def test_previous_container_is_removed_first(self, running_executor, params, facts, logger, tmp_path):
        pipeline, _ = make_pipeline(running_executor, facts, logger, tmp_path)

        pipeline.roll_out_container(params, facts)

        assert running_executor.index_of("docker stop demo-app") < running_executor.index_of("docker build")

    def test_compose_never_builds_single_image(self, executor, params, compose_facts, logger, tmp_path):
        executor.on("docker ps --format", stdout="demo-app-web-1\ndemo-app-db-1\n")
        pipeline, _ = make_pipeline(executor, compose_facts, logger, tmp_path)

        pipeline.roll_out_container(params, compose_facts)

        assert executor.ran("docker-compose down")
        assert executor.ran("docker-compose up -d --build")
        assert not executor.ran("docker build")
        assert not executor.ran("docker run")

    def test_missing_container_aborts_before_proxy(self, executor, params, facts, logger, tmp_path):
        executor.on("docker ps --format", stdout="something-else\n")
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        with pytest.raises(RolloutError) as exc_info:
            pipeline.run(params)

        assert exc_info.value.exit_code == EXIT_ROLLOUT_FAILURE
        assert not executor.ran("nginx -t")
        assert not executor.ran("sites-available")
        assert not (tmp_path / "deployment.env").exists()

    def test_build_failure_aborts(self, executor, params, facts, logger, tmp_path):
        executor.on("docker build", returncode=1, stderr="failed to solve")
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        with pytest.raises(RolloutError, match="docker build failed"):
            pipeline.roll_out_container(params, facts)

        assert not executor.ran("docker run")


class TestContainerMatching:
    """Running-container lookup"""

    def test_exact_match(self):
        assert match_running_container("demo-app\nother\n", "demo-app") == "demo-app"

    def test_dockerfile_rejects_prefix_match(self):
        assert match_running_container("demo-app-web-1\n", "demo-app") is None

    def test_compose_accepts_substring(self):
        assert match_running_container("demo-app-web-1\n", "demo-app", compose=True) == "demo-app-web-1"

    def test_empty_output(self):
        assert match_running_container("", "demo-app", compose=True) is None


class TestProxy:
    """Step 6"""

    def test_site_is_written_tested_then_reloaded(self, executor, params, facts, logger, tmp_path):
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        pipeline.configure_proxy(params, facts)

        backup = executor.index_of(".backup.")
        write = executor.index_of("sudo tee")
        test = executor.index_of("sudo nginx -t")
        reload = executor.index_of("systemctl reload nginx")
        assert -1 < backup < write < test < reload

        site = executor.options[write].input
        assert "proxy_pass http://localhost:8080;" in site
        assert "listen 80;" in site
        assert "X-Frame-Options" in site

    def test_default_site_is_disabled(self, executor, params, facts, logger, tmp_path):
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        pipeline.configure_proxy(params, facts)

        assert executor.ran("sudo rm -f /etc/nginx/sites-enabled/default")

    def test_failed_syntax_check_never_reloads(self, executor, params, facts, logger, tmp_path):
        executor.on("sudo nginx -t", returncode=1, stderr="unexpected \"}\"")
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        with pytest.raises(ProxyConfigError) as exc_info:
            pipeline.configure_proxy(params, facts)

        assert exc_info.value.exit_code == EXIT_PROXY_CONFIG_FAILURE
        assert not executor.ran("systemctl reload nginx")


class TestPersist:
    """Step 7"""

    def test_record_is_written_and_loadable(self, executor, params, facts, logger, tmp_path):
        pipeline, _ = make_pipeline(executor, facts, logger, tmp_path)

        pipeline.persist_run_facts(params, facts)

        path = tmp_path / "deployment.env"
        assert "DEPLOYMENT_PATH=~/deployments/Demo-App" in path.read_text()
        record = DeploymentRecord.load(path)
        assert record.host == params.host
        assert record.container_name == CONTAINER
        assert record.remote_path == "deployments/Demo-App"
        assert record.app_port == 8080

    def test_write_failure_is_not_fatal(self, executor, params, facts, logger, tmp_path):
        pipeline = DeployPipeline(
            executor,
            FakeSource(facts),
            logger,
            tmp_path / "missing-dir" / "deployment.env",
        )

        pipeline.persist_run_facts(params, facts)

        assert "Could not save deployment information" in logger.log_path.read_text()
