"""
Tests for CLI commands.
"""

from unittest.mock import patch

from typer.testing import CliRunner

from cmdhandler.cli import app

# Disable Rich formatting in tests using NO_COLOR environment variable
runner = CliRunner(env={"NO_COLOR": "1", "TERM": "dumb"})


class TestLoadersCommand:
    """Tests for loaders command."""

    def test_lists_stock_loaders(self):
        result = runner.invoke(app, ["loaders"])

        assert result.exit_code == 0
        for loader_id in ("python", "python3", "node", "go"):
            assert loader_id in result.stdout
        assert "go run" in result.stdout


class TestShowCommand:
    """Tests for show-command."""

    def test_python_loader(self, tmp_path):
        """Test the python loader puts flag and value in separate arguments."""
        result = runner.invoke(
            app,
            [
                "show-command",
                "python",
                "deploy.py",
                "env=prod",
                "app=api",
                "--plugin-root",
                str(tmp_path),
            ],
        )

        assert result.exit_code == 0
        assert "Mode: background" in result.stdout
        assert "Executable: python" in result.stdout
        lines = [line.strip() for line in result.stdout.splitlines()]
        args = lines[lines.index("Arguments:") + 1 :]
        assert args == [
            str(tmp_path / "python" / "deploy.py"),
            "-app",
            "api",
            "-env",
            "prod",
        ]

    def test_go_loader_synchronous(self, tmp_path):
        """Test go run with --key=value arguments and a job runner URL."""
        result = runner.invoke(
            app,
            [
                "show-command",
                "go",
                "main.go",
                "jobRunnerUrl=http://ci/job/1",
                "--plugin-root",
                str(tmp_path),
            ],
        )

        assert result.exit_code == 0
        assert "Mode: synchronous" in result.stdout
        assert "Executable: go" in result.stdout
        lines = [line.strip() for line in result.stdout.splitlines()]
        args = lines[lines.index("Arguments:") + 1 :]
        assert args == [
            "run",
            str(tmp_path / "go" / "main.go"),
            "--jobRunnerUrl=http://ci/job/1",
        ]

    def test_unknown_loader_rejected(self):
        result = runner.invoke(app, ["show-command", "ruby", "deploy.rb"])

        assert result.exit_code == 1
        assert "Rejected" in result.stdout
        assert "unsupported loader" in result.stdout

    def test_unsafe_plugin_rejected(self):
        result = runner.invoke(app, ["show-command", "python", "../evil.py"])

        assert result.exit_code == 1
        assert "unsafe plugin name" in result.stdout

    def test_malformed_parameter(self):
        """Test parameters without '=' are refused."""
        result = runner.invoke(app, ["show-command", "python", "deploy.py", "env"])

        assert result.exit_code == 1
        assert "Expected KEY=VALUE" in result.stdout

    def test_nothing_is_audited(self, tmp_path, monkeypatch):
        log_path = tmp_path / "exec.log"
        monkeypatch.setattr("cmdhandler.config.settings.execution_log", str(log_path))

        result = runner.invoke(app, ["show-command", "python", "deploy.py"])

        assert result.exit_code == 0
        assert not log_path.exists()


class TestServeCommand:
    """Tests for serve command."""

    def test_serve_passes_options_to_uvicorn(self):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--host", "127.0.0.1", "--port", "9000"])

        assert result.exit_code == 0
        mock_run.assert_called_once()
        kwargs = mock_run.call_args.kwargs
        assert mock_run.call_args.args == ("cmdhandler.api.app:app",)
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9000
        assert kwargs["reload"] is False

    def test_serve_with_tls(self, tmp_path):
        cert = tmp_path / "cert.pem"
        key = tmp_path / "key.pem"
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(
                app,
                ["serve", "--ssl-certfile", str(cert), "--ssl-keyfile", str(key)],
            )

        assert result.exit_code == 0
        assert "TLS: on" in result.stdout
        assert mock_run.call_args.kwargs["ssl_certfile"] == str(cert)
        assert mock_run.call_args.kwargs["ssl_keyfile"] == str(key)

    def test_serve_rejects_half_tls_config(self, tmp_path):
        """Test a certificate without a key is refused before starting."""
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--ssl-certfile", str(tmp_path / "c.pem")])

        assert result.exit_code == 1
        assert "TLS needs both" in result.stdout
        mock_run.assert_not_called()
