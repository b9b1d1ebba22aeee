"""Git operations — bring the scripts checkout up to date.

The git executable is passed in explicitly and every command is bounded by a
timeout. Nothing here touches ``PATH`` or other process-wide state.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from git import InvalidGitRepositoryError, NoSuchPathError, Repo

from cisync.errors import TransportTimeout

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of a branch sync."""

    succeeded: bool
    diagnostics: list[str] = field(default_factory=list)
    commit: str = ""


class GitSync:
    """Syncs a local clone to a branch.

    Args:
        repo_path: Path to an existing clone.
        git_executable: Git binary to run (name or absolute path).
        timeout: Upper bound in seconds for each git command.
    """

    def __init__(self, repo_path: str | Path, git_executable: str = "git", timeout: float = 60.0):
        self.repo_path = Path(repo_path)
        self.git_executable = git_executable
        self.timeout = timeout

    def _run(self, repo: Repo, *args: str) -> tuple[int, str, str]:
        started = time.monotonic()
        status, stdout, stderr = repo.git.execute(
            [self.git_executable, *args],
            with_extended_output=True,
            with_exceptions=False,
            kill_after_timeout=self.timeout,
        )
        if status != 0 and time.monotonic() - started >= self.timeout:
            raise TransportTimeout(
                f"git {' '.join(args)} did not finish within {self.timeout:g}s"
            )
        return status, stdout, stderr

    def sync(self, branch: str) -> SyncResult:
        """Check out ``branch`` and fast-forward it from its remote.

        Raises:
            TransportTimeout: If a git command exceeds the timeout.
        """
        try:
            repo = Repo(self.repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            return SyncResult(False, [f"Not a Git repo: {self.repo_path}"])

        result = SyncResult(succeeded=True)
        steps = [("checkout", branch)]
        if repo.remotes:
            steps.insert(0, ("fetch", "--prune", repo.remotes[0].name))
            steps.append(("pull", "--ff-only"))

        for args in steps:
            status, stdout, stderr = self._run(repo, *args)
            for text in (stdout, stderr):
                result.diagnostics.extend(line for line in text.splitlines() if line.strip())
            if status != 0:
                logger.warning("git %s exited with %d", args[0], status)
                result.succeeded = False
                return result

        result.commit = repo.head.commit.hexsha
        logger.info("Synced %s to %s at %s", self.repo_path, branch, result.commit[:12])
        return result
