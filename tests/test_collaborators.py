"""Tests for configuration, the script store, git sync and the CLI."""

import sys
import tempfile
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner
from git import Actor, Repo

from ci_samples import DISCOVERY, package, script_setting
from cisync.cli import main
from cisync.config import PASSWORD_ENV, USERNAME_ENV, load_settings
from cisync.errors import ConfigError, TransportTimeout
from cisync.models.script import RawScript, ScriptKind
from cisync.reconcile.audit import ScriptInfo, read_audit_csv
from cisync.utils.git_ops import GitSync
from cisync.utils.script_store import ScriptStore

AUTHOR = Actor("cisync tests", "tests@example.com")


# --- Config ---


def test_load_settings_from_yaml():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "cisync.yaml"
        with open(path, "w") as f:
            yaml.dump(
                {
                    "repo_path": "/srv/ci-scripts",
                    "scripts_dir": "ConfigurationItems",
                    "service_url": "https://cm01/AdminService",
                    "workers": 8,
                    "items": ["Disable SMBv1"],
                },
                f,
            )
        settings = load_settings(path, workers=2, log_only=None)

    assert settings.workers == 2
    assert settings.log_only is False
    assert settings.items == ["Disable SMBv1"]
    assert settings.scripts_root == Path("/srv/ci-scripts/ConfigurationItems")


def test_load_settings_rejects_unknown_keys():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "cisync.yaml"
        path.write_text("repo_path: .\nbranchh: main\n")
        with pytest.raises(ConfigError):
            load_settings(path)


def test_load_settings_missing_file():
    with pytest.raises(ConfigError):
        load_settings("/nonexistent/cisync.yaml")


def test_credentials_from_environment(monkeypatch):
    monkeypatch.setenv(USERNAME_ENV, "CORP\\svc-cisync")
    monkeypatch.setenv(PASSWORD_ENV, "hunter2")
    assert load_settings().credentials() == ("CORP\\svc-cisync", "hunter2")
    monkeypatch.delenv(PASSWORD_ENV)
    assert load_settings().credentials() is None


# --- Script store ---


def test_script_store_reads_plain_and_ps1_files():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "CI A").mkdir()
        (root / "CI A" / "DiscoveryScript").write_text("exit 0\n")
        (root / "CI A" / "RemediationScript.ps1").write_bytes(b"\xef\xbb\xbfexit 1\n")
        (root / "empty").mkdir()
        (root / ".git").mkdir()

        store = ScriptStore(root)
        assert store.item_names() == ["CI A"]
        assert store.read("CI A", ScriptKind.DISCOVERY) == RawScript("exit 0\n")
        assert store.read("CI A", ScriptKind.REMEDIATION) == RawScript("exit 1\n")
        assert store.read("missing", ScriptKind.DISCOVERY) is None


def test_script_store_keeps_crlf_line_endings():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "CI A").mkdir()
        (Path(tmpdir) / "CI A" / "DiscoveryScript.ps1").write_bytes(b"$a = 1\r\nexit $a\r\n")

        script = ScriptStore(tmpdir).read("CI A", ScriptKind.DISCOVERY)
        assert script == RawScript("$a = 1\r\nexit $a\r\n")


# --- Git sync ---


def _init_repo(path):
    repo = Repo.init(path)
    (Path(path) / "README.md").write_text("scripts\n")
    repo.index.add(["README.md"])
    repo.index.commit("initial", author=AUTHOR, committer=AUTHOR)
    repo.create_head("release")
    return repo


def test_git_sync_checks_out_branch():
    with tempfile.TemporaryDirectory() as tmpdir:
        repo = _init_repo(tmpdir)
        result = GitSync(tmpdir, timeout=30).sync("release")

        assert result.succeeded
        assert repo.active_branch.name == "release"
        assert result.commit == repo.head.commit.hexsha


def test_git_sync_unknown_branch_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        _init_repo(tmpdir)
        result = GitSync(tmpdir, timeout=30).sync("no-such-branch")
        assert not result.succeeded
        assert result.diagnostics


def test_git_sync_not_a_repo():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = GitSync(tmpdir).sync("main")
        assert not result.succeeded


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell script as git")
def test_git_sync_kills_hung_command():
    with tempfile.TemporaryDirectory() as tmpdir:
        _init_repo(tmpdir)
        hung_git = Path(tmpdir) / "hung-git"
        hung_git.write_text("#!/bin/sh\nexec sleep 5\n")
        hung_git.chmod(0o755)

        with pytest.raises(TransportTimeout):
            GitSync(tmpdir, git_executable=str(hung_git), timeout=0.5).sync("release")


# --- CLI ---


def test_cli_normalize_prints_canonical_text():
    runner = CliRunner()
    with runner.isolated_filesystem():
        Path("DiscoveryScript").write_text("  exit 0  \n\n# SIG # Begin signature block\n# abc\n")
        result = runner.invoke(main, ["normalize", "DiscoveryScript"])

    assert result.exit_code == 0
    assert result.output.startswith("exit 0\n")
    assert "sha256" in result.output


def test_cli_extract_prints_embedded_script():
    runner = CliRunner()
    with runner.isolated_filesystem():
        Path("package.xml").write_text(package(script_setting()))
        result = runner.invoke(main, ["extract", "package.xml", "--kind", "discovery"])

    assert result.exit_code == 0
    assert DISCOVERY.strip() in result.output


def test_cli_reconcile_requires_service_url():
    runner = CliRunner()
    result = runner.invoke(main, ["reconcile", "--no-sync"])
    assert result.exit_code == 2


def test_cli_reconcile_failed_sync_records_every_item():
    runner = CliRunner()
    with runner.isolated_filesystem():
        Path("cisync.yaml").write_text("repo_path: .\nservice_url: https://cm01.invalid/AdminService\n")
        for name in ("CI A", "CI B"):
            Path(name).mkdir()
            Path(name, "DiscoveryScript").write_text("exit 0\n")

        result = runner.invoke(main, ["reconcile", "-c", "cisync.yaml"])
        rows = read_audit_csv("cisync-audit.csv")

    assert result.exit_code == 1
    assert [r.item_name for r in rows] == ["CI A", "CI B"]
    assert all(r.discovery_info == ScriptInfo.ERROR for r in rows)
