import json
import re
import tempfile
import threading
import time
import unittest
from pathlib import Path
from unittest.mock import Mock

from vc_smart_commit.config.loader import ConfigResolver, GitConfig
from vc_smart_commit.orchestrator import CommitOrchestrator
from vc_smart_commit.vcs.git_client import GitError, RepositoryStatus


class DummyGitClient:
    """In-memory stand-in for :class:`GitClient`."""

    def __init__(self, root, status=None, fail_stage=(), fail_commit=(), fail_push=False):
        self.repo_root = Path(root)
        self.status = status or RepositoryStatus()
        self.fail_stage = set(fail_stage)
        self.fail_commit = set(fail_commit)
        self.fail_push = fail_push
        self.staged = []
        self.commits = []
        self.pushes = []

    def get_status(self):
        return self.status

    def get_diff(self, path, staged=False):
        return f"diff --git a/{path} b/{path}"

    def get_current_branch(self):
        return self.status.current_branch

    def stage_files(self, files):
        for file in files:
            if file in self.fail_stage:
                raise GitError(f"pathspec '{file}' did not match any files")
        self.staged.append(list(files))

    def commit(self, message, files=None):
        if any(f in self.fail_commit for f in files or []):
            raise GitError("commit failed")
        self.commits.append((message, list(files or [])))
        return f"sha{len(self.commits)}"

    def push(self, remote="origin", branch=None):
        if self.fail_push:
            raise GitError("fatal: unable to access remote")
        self.pushes.append((remote, branch))


class OrchestratorTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.repo = (self.root / "repo").resolve()
        (self.repo / ".git").mkdir(parents=True)
        self.resolver = ConfigResolver(global_path=self.root / "global.json")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def make(self, client, **kwargs) -> CommitOrchestrator:
        return CommitOrchestrator(
            resolver=self.resolver,
            client_factory=lambda path: client,
            default_repo_path=self.repo,
            **kwargs,
        )


class TestSmartCommit(OrchestratorTestCase):
    def test_clean_tree_commits_nothing(self) -> None:
        client = DummyGitClient(self.repo)
        result = self.make(client).smart_commit()
        self.assertTrue(result.success)
        self.assertEqual(result.message, "No changes to commit")
        self.assertEqual(result.data["commitsCreated"], 0)
        self.assertFalse(result.data["pushed"])
        self.assertEqual(result.data["commitUnits"], [])
        self.assertEqual(client.commits, [])

    def test_everything_filtered_out(self) -> None:
        client = DummyGitClient(self.repo, status=RepositoryStatus(modified=["../escape.py"]))
        result = self.make(client).smart_commit()
        self.assertTrue(result.success)
        self.assertEqual(result.message, "No valid changes found for commit")
        self.assertEqual(result.data["commitsCreated"], 0)

    def test_commits_each_unit_in_order(self) -> None:
        status = RepositoryStatus(
            modified=["src/api/handler.ts", "src/api/utils.ts"],
            untracked=["README.md"],
        )
        client = DummyGitClient(self.repo, status=status)
        result = self.make(client).smart_commit()

        self.assertTrue(result.success)
        self.assertEqual(
            client.commits,
            [
                ("feat(api): update 2 files for API endpoints", ["src/api/handler.ts", "src/api/utils.ts"]),
                ("docs(docs): add README.md", ["README.md"]),
            ],
        )
        self.assertEqual(client.staged, [["src/api/handler.ts", "src/api/utils.ts"], ["README.md"]])
        self.assertEqual(result.data["commitsCreated"], 2)
        self.assertEqual(result.data["totalFiles"], 3)
        self.assertEqual(result.data["commits"], ["sha1", "sha2"])
        self.assertEqual(result.message, "Created 2 commit(s) from 3 file(s)")
        self.assertIsInstance(result.data["analysisTimeMs"], int)
        json.dumps(result.to_dict())

    def test_body_is_appended_to_commit_message(self) -> None:
        status = RepositoryStatus(untracked=[f"tests/test_{n}.py" for n in "abcd"])
        client = DummyGitClient(self.repo, status=status)
        self.make(client).smart_commit()
        message = client.commits[0][0]
        self.assertTrue(message.startswith("test(tests): add 4 files for tests\n\nFiles changed:\n"))

    def test_one_failing_unit_does_not_block_others(self) -> None:
        status = RepositoryStatus(
            modified=["README.md", "tests/test_a.py", "app.json", "web/site.css", "src/util/strings.py"],
        )
        client = DummyGitClient(self.repo, status=status, fail_stage=["app.json"])
        result = self.make(client).smart_commit()

        self.assertTrue(result.success)
        self.assertEqual(result.data["commitsCreated"], 4)
        self.assertEqual(len(result.data["commitUnits"]), 5)
        failed = [o for o in result.data["outcomes"] if not o["success"]]
        self.assertEqual(len(failed), 1)
        self.assertEqual(failed[0]["files"], ["app.json"])
        self.assertIn("did not match", failed[0]["error"])

    def test_commit_failure_is_isolated(self) -> None:
        status = RepositoryStatus(modified=["README.md", "main.py"])
        client = DummyGitClient(self.repo, status=status, fail_commit=["README.md"])
        result = self.make(client).smart_commit()
        self.assertEqual(result.data["commitsCreated"], 1)
        self.assertEqual(client.commits[0][1], ["main.py"])

    def test_auto_push_after_success(self) -> None:
        status = RepositoryStatus(current_branch="main", modified=["main.py"])
        client = DummyGitClient(self.repo, status=status)
        result = self.make(client).smart_commit(auto_push=True)
        self.assertTrue(result.data["pushed"])
        self.assertEqual(client.pushes, [("origin", None)])
        self.assertEqual(result.message, "Created 1 commit(s) from 1 file(s) and pushed to remote")

    def test_auto_push_uses_configured_remote_and_flag(self) -> None:
        self.resolver.save(GitConfig(auto_push=True, remote_name="upstream"), self.repo)
        client = DummyGitClient(self.repo, status=RepositoryStatus(modified=["main.py"]))
        result = self.make(client).smart_commit()
        self.assertTrue(result.data["pushed"])
        self.assertEqual(client.pushes, [("upstream", None)])

    def test_explicit_no_push_overrides_config(self) -> None:
        self.resolver.save(GitConfig(auto_push=True), self.repo)
        client = DummyGitClient(self.repo, status=RepositoryStatus(modified=["main.py"]))
        result = self.make(client).smart_commit(auto_push=False)
        self.assertFalse(result.data["pushed"])
        self.assertEqual(client.pushes, [])

    def test_push_failure_keeps_success(self) -> None:
        client = DummyGitClient(self.repo, status=RepositoryStatus(modified=["main.py"]), fail_push=True)
        result = self.make(client).smart_commit(auto_push=True)
        self.assertTrue(result.success)
        self.assertFalse(result.data["pushed"])
        self.assertEqual(result.data["commitsCreated"], 1)

    def test_no_push_when_nothing_committed(self) -> None:
        client = DummyGitClient(self.repo, status=RepositoryStatus(modified=["main.py"]), fail_stage=["main.py"])
        result = self.make(client).smart_commit(auto_push=True)
        self.assertTrue(result.success)
        self.assertEqual(result.data["commitsCreated"], 0)
        self.assertEqual(client.pushes, [])

    def test_style_override_does_not_touch_cached_config(self) -> None:
        client = DummyGitClient(self.repo, status=RepositoryStatus(untracked=["README.md"]))
        orchestrator = self.make(client)
        orchestrator.smart_commit(commit_style="simple")
        self.assertEqual(client.commits[0][0], "Add README.md")
        self.assertEqual(orchestrator.get_config().commit_style, "conventional")

    def test_invalid_style_is_config_error(self) -> None:
        client = DummyGitClient(self.repo, status=RepositoryStatus(untracked=["README.md"]))
        result = self.make(client).smart_commit(commit_style="fancy")
        self.assertFalse(result.success)
        self.assertEqual(result.data["category"], "config")
        self.assertEqual(client.commits, [])

    def test_not_a_repository(self) -> None:
        plain = self.root / "plain"
        plain.mkdir()
        result = self.make(DummyGitClient(plain)).smart_commit(repo_path=plain)
        self.assertFalse(result.success)
        self.assertEqual(result.data["category"], "repository")
        self.assertIn("Not a git repository", result.error)
        self.assertTrue(result.data["suggestion"])

    def test_status_failure_is_reported(self) -> None:
        client = DummyGitClient(self.repo)
        client.get_status = Mock(side_effect=GitError("fatal: index file corrupt"))
        result = self.make(client).smart_commit()
        self.assertFalse(result.success)
        self.assertEqual(result.error, "fatal: index file corrupt")

    def test_staged_rename_commits_the_old_path_too(self) -> None:
        status = RepositoryStatus(
            staged={"src/new.py": "R", "README.md": "M"},
            renamed_from={"src/new.py": "src/old.py"},
        )
        client = DummyGitClient(self.repo, status=status)
        result = self.make(client).smart_commit()
        self.assertEqual(result.data["commitsCreated"], 2)
        self.assertEqual(
            client.commits,
            [
                ("feat(src): update new.py", ["src/new.py", "src/old.py"]),
                ("docs(docs): update README.md", ["README.md"]),
            ],
        )
        self.assertEqual(client.staged, [["src/new.py"], ["README.md"]])
        self.assertEqual(result.data["commitUnits"][0]["files"], ["src/new.py"])

    def test_custom_grouper_is_used(self) -> None:
        status = RepositoryStatus(modified=["README.md", "main.py"])
        client = DummyGitClient(self.repo, status=status)
        result = self.make(client, grouper=lambda changes: [list(changes)]).smart_commit()
        self.assertEqual(result.data["commitsCreated"], 1)
        self.assertEqual(client.commits[0][1], ["README.md", "main.py"])

    def test_conventional_messages_match_format(self) -> None:
        status = RepositoryStatus(
            modified=["a.png", "src/x.py", "Dockerfile", "tests/test_x.py", "web/a.css"],
        )
        client = DummyGitClient(self.repo, status=status)
        self.make(client).smart_commit()
        for message, _ in client.commits:
            self.assertRegex(message.splitlines()[0], re.compile(r"^[a-z]+\([^)]+\): .+$"))


class TestOtherOperations(OrchestratorTestCase):
    def test_analyze_changes_does_not_stage(self) -> None:
        status = RepositoryStatus(untracked=["README.md", "main.py"])
        client = DummyGitClient(self.repo, status=status)
        result = self.make(client).analyze_changes()
        self.assertTrue(result.success)
        self.assertEqual(
            [u["message"] for u in result.data["commitUnits"]],
            ["docs(docs): add README.md", "feat(core): add main.py"],
        )
        self.assertEqual(result.data["commitsCreated"], 0)
        self.assertEqual(client.staged, [])
        self.assertEqual(client.commits, [])

    def test_get_status(self) -> None:
        status = RepositoryStatus(
            current_branch="dev",
            staged={"a.py": "A"},
            modified=["b.py"],
            deleted=["c.py"],
            untracked=["d.py"],
        )
        result = self.make(DummyGitClient(self.repo, status=status)).get_status()
        self.assertTrue(result.success)
        self.assertEqual(
            result.data["status"],
            {
                "path": str(self.repo),
                "currentBranch": "dev",
                "isDirty": True,
                "stagedFiles": ["a.py"],
                "unstagedFiles": ["b.py", "c.py"],
                "untrackedFiles": ["d.py"],
            },
        )

    def test_save_config_round_trip(self) -> None:
        orchestrator = self.make(DummyGitClient(self.repo))
        config = GitConfig(commit_style="simple", max_file_size=10)
        result = orchestrator.save_config(config)
        self.assertTrue(result.success)
        orchestrator.resolver.clear_cache()
        self.assertEqual(orchestrator.get_config(), config)

    def test_save_config_requires_repository(self) -> None:
        plain = self.root / "plain"
        plain.mkdir()
        result = self.make(DummyGitClient(plain)).save_config(GitConfig(), repo_path=plain)
        self.assertFalse(result.success)
        self.assertEqual(result.data["category"], "repository")
        self.assertFalse((plain / ".git").exists())

    def test_save_repo_config_keeps_global_fields(self) -> None:
        orchestrator = self.make(DummyGitClient(self.repo))
        self.assertTrue(orchestrator.save_repo_config({"commitStyle": "simple"}).success)
        self.assertTrue(orchestrator.save_global_config({"remoteName": "upstream", "commitStyle": "conventional"}).success)
        config = orchestrator.get_config()
        self.assertEqual(config.commit_style, "simple")
        self.assertEqual(config.remote_name, "upstream")

    def test_save_repo_config_rejects_bad_value(self) -> None:
        orchestrator = self.make(DummyGitClient(self.repo))
        result = orchestrator.save_repo_config({"maxFileSize": 0})
        self.assertFalse(result.success)
        self.assertEqual(result.data["category"], "config")

    def test_save_global_config_error(self) -> None:
        result = self.make(DummyGitClient(self.repo)).save_global_config({"autoPush": "sometimes"})
        self.assertFalse(result.success)
        self.assertEqual(result.data["category"], "config")

    def test_same_repository_is_serialized(self) -> None:
        active = []
        overlaps = []

        class SlowClient(DummyGitClient):
            def get_status(self_inner):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                time.sleep(0.05)
                active.pop()
                return RepositoryStatus()

        orchestrator = self.make(SlowClient(self.repo))
        threads = [threading.Thread(target=orchestrator.smart_commit) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(overlaps, [])


if __name__ == "__main__":
    unittest.main()
