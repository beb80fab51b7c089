"""Release workflow generation."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .project import GITHUB_NAME, GitHubRepository
from .prompt import Prompter

WORKFLOW_DIR = Path(".github") / "workflows"
TAG_PATTERN = "v*"

# Pinned by commit so the release job cannot be changed under us.
HARDEN_RUNNER = "step-security/harden-runner@a4aa98b93cab29d9b1101a6143fb8bce00e2eac4 # v2.7.1"
CHECKOUT = "actions/checkout@0ad4b8fadaa221de15dcec353f45205ec38ea70b # v4.1.4"
SETUP_RUBY = "ruby/setup-ruby@cacc9f1c0b3f4eb8a16a6bb0ed10897b43b9de49 # v1.176.0"
RELEASE_GEM = "rubygems/release-gem@612653d273a73bdae1df8453e090060bb4db5f31 # v1"


class TriggerMode(Enum):
    """How releases are started."""

    TAG_PUSH = f"Automatically when a new tag matching {TAG_PATTERN} is pushed"
    MANUAL_DISPATCH = "Manually by running a GitHub Action"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class WorkflowEnvironment:
    """Environment the release job is bound to."""

    name: str
    url: str


def ask_trigger_mode(prompter: Prompter, gem_name: str) -> TriggerMode:
    """Ask how releases should be triggered; manual dispatch is the default."""
    modes = list(TriggerMode)
    prompter.say()
    label = prompter.ask_choice(
        f"How would you like releases for {gem_name} to be triggered?",
        [mode.label for mode in modes],
        default=modes.index(TriggerMode.MANUAL_DISPATCH) + 1,
    )
    return next(mode for mode in modes if mode.label == label)


def _trigger_lines(trigger_mode: TriggerMode) -> List[str]:
    if trigger_mode is TriggerMode.TAG_PUSH:
        return ["  push:", "    tags:", f"      - '{TAG_PATTERN}'"]
    return ["  workflow_dispatch:"]


def render(
    trigger_mode: TriggerMode,
    repository: GitHubRepository,
    environment: Optional[WorkflowEnvironment] = None,
) -> str:
    """
    Render the release workflow.

    The job only runs in the exact repository the trusted publisher is
    configured for. Output depends on the arguments alone.

    Args:
        trigger_mode: Tag push or manual dispatch
        repository: Repository the trusted publisher is configured for
        environment: Optional environment to bind the job to

    Returns:
        Workflow YAML text

    Raises:
        ValueError: If the repository identity is not a plain owner/name pair,
            or the environment name is not a plain name
    """
    for part in (repository.owner, repository.name):
        if not GITHUB_NAME.match(part):
            raise ValueError(f"Invalid GitHub repository: {repository.slug!r}")
    if environment is not None and not GITHUB_NAME.match(environment.name):
        raise ValueError(f"Invalid environment name: {environment.name!r}")

    lines = ["name: Push Gem", "", "on:"]
    lines += _trigger_lines(trigger_mode)
    lines += [
        "",
        "permissions:",
        "  contents: read",
        "",
        "jobs:",
        "  push:",
        f"    if: github.repository == '{repository.slug}'",
        "    runs-on: ubuntu-latest",
    ]

    if environment is not None:
        lines += [
            "",
            "    environment:",
            f"      name: {environment.name}",
            f"      url: {environment.url}",
            "",
        ]
    else:
        lines.append("")

    lines += [
        "    permissions:",
        "      contents: write",
        "      id-token: write",
        "",
        "    steps:",
        "      # Set up",
        "      - name: Harden Runner",
        f"        uses: {HARDEN_RUNNER}",
        "        with:",
        "          egress-policy: audit",
        "",
        f"      - uses: {CHECKOUT}",
        "      - name: Set up Ruby",
        f"        uses: {SETUP_RUBY}",
        "        with:",
        "          bundler-cache: true",
        "          ruby-version: ruby",
        "",
        "      # Release",
        f"      - uses: {RELEASE_GEM}",
        "",
    ]
    return "\n".join(lines)


def workflow_path(repository_root: Path, filename: str) -> Path:
    return Path(repository_root).resolve() / WORKFLOW_DIR / filename


def write(path: Path, text: str, prompter: Prompter) -> bool:
    """
    Write the workflow file.

    Missing parent directories are created. An existing file is only
    replaced if the operator confirms.

    Returns:
        True if the file was written, False if the operator kept the old one
    """
    path = Path(path)
    if path.exists():
        prompter.say()
        if not prompter.ask_yes_no(f"{path} already exists, overwrite?", default=False):
            return False
    else:
        path.parent.mkdir(parents=True, exist_ok=True)

    path.write_text(text)
    return True
