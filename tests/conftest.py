"""Shared pytest fixtures for all tests."""

from typing import Any, List
from unittest.mock import Mock

import pytest

from trusted_publisher.config import PublisherConfig
from trusted_publisher.environment import Environment
from trusted_publisher.project import GemSpec
from trusted_publisher.prompt import Prompter


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: end-to-end flow tests")


class ScriptedPrompter(Prompter):
    """Prompter that replays canned answers and records what was asked."""

    def __init__(self, answers: List[Any] = None):
        self.answers = list(answers or [])
        self.questions: List[str] = []
        self.said: List[str] = []

    def _next(self, question: str) -> Any:
        self.questions.append(question)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {question}")
        return self.answers.pop(0)

    def say(self, message: str = "") -> None:
        self.said.append(message)

    def ask(self, question: str) -> str:
        return self._next(question)

    def ask_secret(self, question: str) -> str:
        return self._next(question)

    def ask_yes_no(self, question: str, default: bool = True) -> bool:
        answer = self._next(question)
        return default if answer is None else answer

    def ask_choice(self, question: str, choices: List[str], default: int = 1) -> str:
        answer = self._next(question)
        if answer is None:
            return choices[default - 1]
        return choices[answer - 1]

    @property
    def output(self) -> str:
        return "\n".join(self.said)


@pytest.fixture
def prompter_factory():
    """Build a ScriptedPrompter from a list of answers."""
    return ScriptedPrompter


@pytest.fixture
def foo_gemspec():
    """Gemspec for foo hosted at github.com/acme/foo."""
    return GemSpec(
        name="foo",
        homepage="https://foo.example.com",
        metadata={"source_code_uri": "https://github.com/acme/foo"},
    )


@pytest.fixture
def gem_repo(tmp_path):
    """Empty gem checkout with a gemspec file."""
    repo = tmp_path / "foo"
    repo.mkdir()
    (repo / "foo.gemspec").write_text("Gem::Specification.new { |s| s.name = 'foo' }\n")
    return repo


@pytest.fixture
def publisher_config():
    return PublisherConfig({})


@pytest.fixture
def mock_provisioner():
    """Provisioner that reports a freshly created rubygems.org environment."""
    provisioner = Mock()
    provisioner.ensure_environment.return_value = Environment(
        name="rubygems.org",
        url="https://github.com/acme/foo/deployments/activity_log?environments_filter=rubygems.org",
        created=True,
    )
    return provisioner


@pytest.fixture
def existing_publisher():
    """Registry listing entry for acme/foo without an environment."""
    return {
        "id": 1,
        "trusted_publisher_type": "OIDC::TrustedPublisher::GitHubAction",
        "trusted_publisher": {
            "name": "GitHub Actions acme/foo @ .github/workflows/push_gem.yml",
            "repository_owner": "acme",
            "repository_name": "foo",
            "repository_owner_id": "1234",
            "workflow_filename": "push_gem.yml",
            "environment": None,
        },
    }


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Keep the caller's registry settings out of the tests."""
    for var in (
        "GEM_HOST_API_KEY",
        "RUBYGEMS_HOST",
        "TRUSTED_PUBLISHER_ENVIRONMENT",
        "TRUSTED_PUBLISHER_WORKFLOW",
    ):
        monkeypatch.delenv(var, raising=False)
