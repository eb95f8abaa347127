"""Tests for the release-relay command line."""

from __future__ import annotations

import hashlib
import hmac
import io
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from release_relay.cli import main
from release_relay.models import ReleaseRecord
from release_relay.store.metadata_store import MetadataStore


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("RELAY_WEBHOOK_SECRET", raising=False)
    monkeypatch.delenv("WEBHOOK_SECRET", raising=False)
    monkeypatch.delenv("RELAY_STORE_LOCATION", raising=False)
    monkeypatch.delenv("RELAY_REQUIRED_ARCHITECTURES", raising=False)
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET", "cli-secret")


def _seed(path: Path, *names: str) -> None:
    store = MetadataStore(path)
    for name in names:
        store.append(ReleaseRecord.build(name, "sha256:0"))


class TestSign:
    def test_sign_file(self, tmp_path: Path, capsys):
        payload = tmp_path / "event.json"
        payload.write_bytes(b'{"action": "published"}')

        main(["sign", str(payload)])

        expected = hmac.new(b"cli-secret", payload.read_bytes(), hashlib.sha256).hexdigest()
        assert capsys.readouterr().out.strip() == f"sha256={expected}"

    def test_sign_stdin(self, monkeypatch, capsys):
        stdin = io.TextIOWrapper(io.BytesIO(b"raw body"))
        monkeypatch.setattr("sys.stdin", stdin)

        main(["sign", "-"])

        expected = hmac.new(b"cli-secret", b"raw body", hashlib.sha256).hexdigest()
        assert capsys.readouterr().out.strip() == f"sha256={expected}"

    def test_missing_file(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["sign", "nope.json"])
        assert exc_info.value.code == 1
        assert "not found" in capsys.readouterr().err

    def test_missing_secret(self, monkeypatch, tmp_path: Path, capsys):
        monkeypatch.delenv("GITHUB_WEBHOOK_SECRET")
        payload = tmp_path / "event.json"
        payload.write_bytes(b"{}")
        with pytest.raises(SystemExit) as exc_info:
            main(["sign", str(payload)])
        assert exc_info.value.code == 1
        assert "webhook_secret" in capsys.readouterr().err


class TestResolve:
    def test_resolved(self, tmp_path: Path, capsys):
        store = tmp_path / "metadata.json"
        _seed(store, "1.2.0-arm64", "1.3.0-arm64", "1.3.0-amd64")

        main(["resolve", "--store", str(store)])

        assert json.loads(capsys.readouterr().out) == {"arm64": "1.3.0-arm64", "amd64": "1.3.0-amd64"}

    def test_explicit_architectures(self, tmp_path: Path, capsys):
        store = tmp_path / "metadata.json"
        _seed(store, "1.3.0-arm64")

        main(["resolve", "--store", str(store), "--arch", "arm64"])

        assert json.loads(capsys.readouterr().out) == {"arm64": "1.3.0-arm64"}

    def test_mismatch_exits_1(self, tmp_path: Path, capsys):
        store = tmp_path / "metadata.json"
        _seed(store, "1.3.0-arm64", "1.2.0-amd64")

        with pytest.raises(SystemExit) as exc_info:
            main(["resolve", "--store", str(store)])
        assert exc_info.value.code == 1
        assert "UNRESOLVED" in capsys.readouterr().err

    def test_no_parity(self, tmp_path: Path, capsys):
        store = tmp_path / "metadata.json"
        _seed(store, "1.3.0-arm64", "1.2.0-amd64")

        main(["resolve", "--store", str(store), "--no-parity"])

        assert json.loads(capsys.readouterr().out) == {"arm64": "1.3.0-arm64", "amd64": "1.2.0-amd64"}

    def test_missing_store_is_unresolved(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["resolve", "--store", "absent.json"])
        assert exc_info.value.code == 1
        assert "arm64" in capsys.readouterr().err

    def test_defaults_follow_settings(self, monkeypatch, tmp_path: Path, capsys):
        configured = tmp_path / "data" / "releases.json"
        _seed(configured, "2.0.0-riscv64")
        monkeypatch.setenv("RELAY_STORE_LOCATION", str(configured))
        monkeypatch.setenv("RELAY_REQUIRED_ARCHITECTURES", "riscv64")

        main(["resolve"])

        assert json.loads(capsys.readouterr().out) == {"riscv64": "2.0.0-riscv64"}

    def test_defaults_without_secret(self, monkeypatch, tmp_path: Path, capsys):
        monkeypatch.delenv("GITHUB_WEBHOOK_SECRET")
        _seed(tmp_path / "metadata.json", "1.3.0-arm64", "1.3.0-amd64")

        main(["resolve"])

        assert json.loads(capsys.readouterr().out) == {"arm64": "1.3.0-arm64", "amd64": "1.3.0-amd64"}

    def test_corrupt_store_exits_2(self, tmp_path: Path):
        store = tmp_path / "metadata.json"
        store.write_text("{broken")
        with pytest.raises(SystemExit) as exc_info:
            main(["resolve", "--store", str(store)])
        assert exc_info.value.code == 2


class TestServe:
    def test_serve_runs_uvicorn(self):
        with patch("uvicorn.run") as run:
            main(["serve", "--port", "9999"])
        run.assert_called_once()
        assert run.call_args.kwargs["port"] == 9999
        assert run.call_args.kwargs["host"] == "0.0.0.0"

    def test_serve_without_secret_exits_1(self, monkeypatch, capsys):
        monkeypatch.delenv("GITHUB_WEBHOOK_SECRET")
        with patch("uvicorn.run") as run, pytest.raises(SystemExit) as exc_info:
            main(["serve"])
        assert exc_info.value.code == 1
        run.assert_not_called()

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])
