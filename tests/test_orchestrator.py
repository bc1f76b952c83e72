"""主流程测试。Orchestrator tests."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from access_tunnel.config.env_config import AccessConfig
from access_tunnel.errors import ConfigError, CredentialError, LaunchError
from access_tunnel.orchestrator import AccessOrchestrator, Stage, main
from access_tunnel.tools.credentials import CredentialProvisioner
from access_tunnel.tools.tunnel_discovery import RetryPolicy, TunnelDiscoveryClient
from access_tunnel.tools.tunnel_launcher import TunnelLauncher
from tests.helpers import SAMPLE_PUBLIC_KEY, make_response, make_session, tunnels_payload


def _discovery_factory(session: MagicMock, seen: list):
    def factory(names, debug):
        seen.append(frozenset(names))
        policy = RetryPolicy(max_attempts=3, delay_seconds=5, sleep=MagicMock())
        return TunnelDiscoveryClient(names, session=session, policy=policy, debug=debug)

    return factory


def _orchestrator(config: AccessConfig, temp_dir: Path, *, runner, session, seen, popen=None) -> AccessOrchestrator:
    provisioner = CredentialProvisioner(
        authorized_keys_path=temp_dir / ".ssh" / "authorized_keys",
        user="runner",
        runner=runner,
    )
    launcher = TunnelLauncher("ngrok", popen=popen or MagicMock(return_value=MagicMock(pid=99)))
    return AccessOrchestrator(
        config,
        provisioner=provisioner,
        launcher=launcher,
        discovery_factory=_discovery_factory(session, seen),
        descriptor_path=temp_dir / "ngrok-config.yml",
        user="runner",
    )


class TestEndToEnd:
    """端到端场景。End-to-end scenarios."""

    def test_ssh_only_run(self, temp_dir: Path, ssh_only_config: AccessConfig, ok_runner: MagicMock, capsys):
        session = make_session(make_response(tunnels_payload(ssh="tcp://0.tcp.example.com:12345")))
        seen: list = []
        orchestrator = _orchestrator(ssh_only_config, temp_dir, runner=ok_runner, session=session, seen=seen)

        instructions = orchestrator.run()

        keys = (temp_dir / ".ssh" / "authorized_keys").read_text(encoding="utf-8")
        assert keys == f"\n{SAMPLE_PUBLIC_KEY}\n"
        descriptor = json.loads((temp_dir / "ngrok-config.yml").read_text(encoding="utf-8"))
        assert descriptor == {"authtoken": "tok123", "tunnels": {"ssh": {"addr": 22, "proto": "tcp"}}}
        ok_runner.assert_not_called()
        assert seen == [frozenset({"ssh"})]
        assert [instruction.name for instruction in instructions] == ["ssh"]
        assert orchestrator.stage is Stage.SERVING
        assert orchestrator.tunnel_pid == 99

        out = capsys.readouterr().out
        assert "ssh runner@0.tcp.example.com -p 12345" in out
        assert "tok123" not in out

    def test_vnc_only_run(self, temp_dir: Path, ok_runner: MagicMock, capsys):
        config = AccessConfig(desktop_password="pw", tunnel_auth_token="tok123")
        session = make_session(
            make_response({"tunnels": [{"name": "vnc", "public_url": "tcp://0.tcp.example.com:41234"}]})
        )
        orchestrator = _orchestrator(config, temp_dir, runner=ok_runner, session=session, seen=[])
        orchestrator.user = "user"

        instructions = orchestrator.run()

        assert instructions[0].command == "open vnc://user@0.tcp.example.com:41234"
        assert ok_runner.call_count == 2
        assert not (temp_dir / ".ssh" / "authorized_keys").exists()
        assert "open vnc://user@0.tcp.example.com:41234" in capsys.readouterr().out

    def test_both_secrets(self, temp_dir: Path, full_config: AccessConfig, ok_runner: MagicMock):
        session = make_session(
            make_response(
                tunnels_payload(ssh="tcp://0.tcp.example.com:1", vnc="tcp://0.tcp.example.com:2")
            )
        )
        seen: list = []
        orchestrator = _orchestrator(full_config, temp_dir, runner=ok_runner, session=session, seen=seen)

        instructions = orchestrator.run()

        assert seen == [frozenset({"ssh", "vnc"})]
        assert [instruction.port for instruction in instructions] == [1, 2]


class TestFailures:
    """测试失败时的状态转移。"""

    def test_credential_failure_stops_before_descriptor(self, temp_dir: Path, full_config: AccessConfig):
        runner = MagicMock(side_effect=FileNotFoundError("sudo"))
        popen = MagicMock()
        orchestrator = _orchestrator(full_config, temp_dir, runner=runner, session=make_session(), seen=[], popen=popen)

        with pytest.raises(CredentialError):
            orchestrator.run()

        assert orchestrator.stage is Stage.FAILED
        assert orchestrator.failed_stage is Stage.PROVISIONING
        assert not (temp_dir / "ngrok-config.yml").exists()
        popen.assert_not_called()

    def test_launch_failure(self, temp_dir: Path, ssh_only_config: AccessConfig, ok_runner: MagicMock):
        popen = MagicMock(side_effect=FileNotFoundError("ngrok"))
        session = make_session()
        orchestrator = _orchestrator(ssh_only_config, temp_dir, runner=ok_runner, session=session, seen=[], popen=popen)

        with pytest.raises(LaunchError):
            orchestrator.run()

        assert orchestrator.failed_stage is Stage.LAUNCHING
        session.get.assert_not_called()

    def test_installer_used_without_launcher(self, temp_dir: Path, ssh_only_config: AccessConfig):
        installer = MagicMock(side_effect=LaunchError("download failed"))
        orchestrator = AccessOrchestrator(
            ssh_only_config,
            provisioner=MagicMock(),
            installer=installer,
            descriptor_path=temp_dir / "ngrok-config.yml",
            user="runner",
        )

        with pytest.raises(LaunchError):
            orchestrator.run()

        installer.assert_called_once_with("ngrok")
        assert orchestrator.failed_stage is Stage.LAUNCHING


class TestServeForever:
    """测试空闲循环。"""

    def test_ticks(self, ssh_only_config: AccessConfig):
        sleep = MagicMock()
        orchestrator = AccessOrchestrator(ssh_only_config, provisioner=MagicMock(), user="runner")
        orchestrator.serve_forever(tick_seconds=10, sleep=sleep, max_ticks=3)
        assert sleep.call_count == 3
        sleep.assert_called_with(10)


class TestMain:
    """测试命令行入口。"""

    def test_config_error_exit_code(self, capsys):
        """输入错误时先打印配置再报错。"""
        assert main([], environ={"ssh_public_key": "key", "user_and_screen_share_password": "pw"}) == 1
        captured = capsys.readouterr()
        assert "Issue with input" in captured.err
        assert "ngrok_auth_token" in captured.err
        assert "- SSHPublicKey: key" in captured.out
        assert "- DesktopPassword: ***" in captured.out

    def test_config_error_fails_in_validating_stage(self, temp_dir: Path):
        orchestrator = AccessOrchestrator(
            AccessConfig(ssh_public_key="key"),
            provisioner=MagicMock(),
            descriptor_path=temp_dir / "ngrok-config.yml",
            user="runner",
        )

        with pytest.raises(ConfigError):
            orchestrator.run()

        assert orchestrator.failed_stage is Stage.VALIDATING
        orchestrator.provisioner.grant_ssh_trust.assert_not_called()
        assert not (temp_dir / "ngrok-config.yml").exists()

    def test_discovery_failure_exit_code(self, temp_dir: Path, ssh_only_config: AccessConfig, ok_runner: MagicMock, capsys):
        session = make_session(*[requests.ConnectionError("refused")] * 3)
        orchestrator = _orchestrator(ssh_only_config, temp_dir, runner=ok_runner, session=session, seen=[])

        code = main(
            [],
            environ={"ssh_public_key": SAMPLE_PUBLIC_KEY, "ngrok_auth_token": "tok123"},
            orchestrator_factory=lambda config: orchestrator,
        )

        assert code == 1
        assert "discovering" in capsys.readouterr().err

    def test_success_enters_idle_loop(self, ssh_only_config: AccessConfig):
        orchestrator = MagicMock()
        code = main(
            [],
            environ={"ssh_public_key": SAMPLE_PUBLIC_KEY, "ngrok_auth_token": "tok123"},
            orchestrator_factory=lambda config: orchestrator,
        )
        assert code == 0
        orchestrator.run.assert_called_once_with()
        orchestrator.serve_forever.assert_called_once_with()
