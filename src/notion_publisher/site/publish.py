"""
Commit and push generated pages.

Stages the output directory (including cached images), commits with a dated
message and pushes to the configured remote branch.
"""

import logging
import os
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence, Union

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..errors import PublishError

logger = logging.getLogger(__name__)


class Publisher:
    def __init__(
        self,
        paths: Sequence[Union[str, Path]],
        repo_path: Union[str, Path] = ".",
        remote: str = "origin",
        branch: str = "main",
        repo: Optional[Repo] = None,
    ):
        """
        Args:
            paths: Files or directories to stage, relative to the current directory
            repo_path: Any path inside the working tree
            remote: Remote to push to
            branch: Branch to push
        """
        self.remote = remote
        self.branch = branch
        if repo is not None:
            self.repo = repo
        else:
            try:
                self.repo = Repo(repo_path, search_parent_directories=True)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise PublishError(f"Not a git repository: {repo_path}") from e

        # git runs from the top of the working tree.
        root = Path(self.repo.working_tree_dir).resolve()
        self.paths: List[str] = [
            os.path.relpath(Path(p).resolve(), root) for p in paths
        ]

    def commit_message(self, today: Optional[date] = None) -> str:
        today = today or date.today()
        return f"Update blog posts from Notion - {today.isoformat()}"

    def _has_staged_changes(self) -> bool:
        if not self.repo.head.is_valid():
            return bool(self.repo.index.entries)
        return bool(self.repo.index.diff("HEAD"))

    def publish(self, today: Optional[date] = None) -> bool:
        """
        Stage, commit and push the generated files.

        Returns:
            True if a commit was pushed, False if there was nothing to push
        """
        try:
            if not self.repo.is_dirty(untracked_files=True):
                logger.info("No changes to push.")
                return False

            self.repo.git.add("--all", "--", *self.paths)
            if not self._has_staged_changes():
                logger.info("No changes to push.")
                return False

            message = self.commit_message(today)
            self.repo.index.commit(message)
            logger.info("Committed: %s", message)

            self.repo.git.push(self.remote, self.branch)
            logger.info("Pushed to %s/%s", self.remote, self.branch)
            return True
        except GitCommandError as e:
            raise PublishError(f"Failed to push: {e}") from e
