"""Tests for perch.cli: entrypoint, argument parsing, and subcommands."""

import json
import sys
import types

import jwt
import pytest

from perch.app import App
from perch.auth import JWTConfig, JWTStrategy
from perch.cli import main
from perch.cli._token import parse_claims
from perch.plugins import Plugin

SECRET = "perch-test-secret-that-is-long-enough-for-hs256"


class TestCLIHelp:
    @pytest.mark.parametrize("argv", [["--help"], ["run", "--help"], ["deploy", "init", "--help"]])
    def test_help_exits_zero(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == 0


class TestCLIMissingArgs:
    @pytest.mark.parametrize("argv", [["run"], ["routes"], ["plugins"], ["deploy", "init"], ["token"]])
    def test_missing_args_exit_2(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == 2


class TestCLINoCommand:
    def test_no_command_exits_zero(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "perch" in capsys.readouterr().out

    def test_deploy_without_subcommand(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["deploy"])
        assert exc_info.value.code == 0


@pytest.fixture
def _demo_module(monkeypatch: pytest.MonkeyPatch) -> None:
    app = App()
    app.auth_strategy("jwt", JWTStrategy(JWTConfig(key=SECRET)))

    @app.route("/")
    def index():
        """Say hello."""
        return "Hello World!"

    @app.route("/restricted", auth="jwt")
    def restricted():
        return "secret"

    def register(server, options):
        @server.get("/status")
        def status():
            return {}

    app.register(Plugin("ops", register, version="2.0.0"), prefix="/ops")

    mod = types.ModuleType("_cli_demo")
    mod.app = app  # type: ignore[attr-defined]
    mod.empty = App()  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_cli_demo", mod)


@pytest.mark.usefixtures("_demo_module")
class TestRoutesCommand:
    def test_table(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["routes", "_cli_demo:app"])
        out = capsys.readouterr().out
        lines = out.splitlines()
        assert lines[0].split() == ["METHOD", "PATH", "AUTH", "HANDLER"]
        assert any(line.split()[:4] == ["GET", "/restricted", "jwt", "restricted"] for line in lines)
        assert any("/ops/status" in line and "[ops]" in line for line in lines)

    def test_empty(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["routes", "_cli_demo:empty"])
        assert "No routes registered." in capsys.readouterr().out

    def test_unresolvable(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "_cli_demo:missing"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err


@pytest.mark.usefixtures("_demo_module")
class TestPluginsCommand:
    def test_table(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["plugins", "_cli_demo:app"])
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["NAME", "VERSION", "PREFIX"]
        assert lines[2].split() == ["ops", "2.0.0", "/ops"]

    def test_empty(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["plugins", "_cli_demo:empty"])
        assert "No plugins registered." in capsys.readouterr().out


@pytest.mark.usefixtures("_demo_module")
class TestRunCommand:
    def test_flags_override_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: dict = {}

        def fake_run(self, host=None, port=None):
            seen.update(host=host, port=port)

        monkeypatch.setattr(App, "run", fake_run)
        main(["run", "_cli_demo:app", "--host", "0.0.0.0", "--port", "9001", "--log-level", "debug"])
        assert seen == {"host": "0.0.0.0", "port": 9001}

    def test_unresolvable_exits_1(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "no_such_module_xyz:app"])
        assert exc_info.value.code == 1


class TestDeployCommand:
    def test_init_writes_descriptor(self, tmp_path, capsys) -> None:
        target = tmp_path / "vercel.json"
        main(["deploy", "init", "app.py", "--output", str(target)])
        data = json.loads(target.read_text())
        assert data["builds"] == [{"src": "app.py", "use": "@vercel/python"}]
        assert data["routes"] == [{"src": "/(.*)", "dest": "app.py"}]
        assert "Wrote" in capsys.readouterr().out

    def test_init_refuses_overwrite(self, tmp_path) -> None:
        target = tmp_path / "vercel.json"
        target.write_text("{}")
        with pytest.raises(SystemExit) as exc_info:
            main(["deploy", "init", "app.py", "-o", str(target)])
        assert exc_info.value.code == 1
        assert target.read_text() == "{}"

    def test_init_force(self, tmp_path) -> None:
        target = tmp_path / "vercel.json"
        target.write_text("{}")
        main(["deploy", "init", "app.py", "-o", str(target), "--force", "--use", "@vercel/python@4"])
        assert json.loads(target.read_text())["builds"][0]["use"] == "@vercel/python@4"

    def test_check_ok(self, tmp_path, capsys) -> None:
        target = tmp_path / "vercel.json"
        main(["deploy", "init", "app.py", "-o", str(target)])
        main(["deploy", "check", str(target)])
        assert "OK" in capsys.readouterr().out

    def test_check_problems(self, tmp_path, capsys) -> None:
        target = tmp_path / "vercel.json"
        target.write_text(json.dumps({"version": 2, "builds": [], "routes": []}))
        with pytest.raises(SystemExit) as exc_info:
            main(["deploy", "check", str(target)])
        assert exc_info.value.code == 1
        assert "No builds" in capsys.readouterr().err

    def test_check_unreadable(self, tmp_path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["deploy", "check", str(tmp_path / "missing.json")])
        assert exc_info.value.code == 1


class TestTokenCommand:
    def test_prints_token(self, capsys) -> None:
        main(["token", "--secret", SECRET, "--claim", "id=1", "--claim", "name=Jen Jones"])
        token = capsys.readouterr().out.strip()
        payload = jwt.decode(token, SECRET, algorithms=["HS256"])
        assert payload["id"] == 1
        assert payload["name"] == "Jen Jones"
        assert "exp" not in payload

    def test_expires(self, capsys) -> None:
        main(["token", "--secret", SECRET, "--expires", "30"])
        payload = jwt.decode(capsys.readouterr().out.strip(), SECRET, algorithms=["HS256"])
        assert payload["exp"] - payload["iat"] == 30

    def test_bad_claim(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["token", "--secret", SECRET, "--claim", "oops"])
        assert exc_info.value.code == 1
        assert "KEY=VALUE" in capsys.readouterr().err

    def test_parse_claims(self) -> None:
        assert parse_claims(["a=1", "b=true", "c=x", "d=[1, 2]", "e="]) == {
            "a": 1,
            "b": True,
            "c": "x",
            "d": [1, 2],
            "e": "",
        }
