"""Gem project inspection: gemspecs, GitHub repository, release task."""

import json
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .errors import PreconditionError

GITHUB_URI = re.compile(r"github.com[:/](?P<owner>[^/]+)/(?P<repo>[^/]+)")
GITHUB_NAME = re.compile(r"\A[A-Za-z0-9_.-]+\Z")

# Metadata fields scanned for the GitHub repository, first match wins.
REPOSITORY_URI_KEYS = ("source_code_uri", "homepage_uri", "bug_tracker_uri")

# Evaluates a gemspec and prints the fields we need as JSON.
GEMSPEC_TO_JSON = (
    "spec = Gem::Specification.load(ARGV.fetch(0)) or "
    "abort(%(Invalid gemspec: #{ARGV.fetch(0)})); "
    "puts JSON.generate("
    "%(name) => spec.name, %(homepage) => spec.homepage, %(metadata) => spec.metadata)"
)

RELEASE_DRY_RUN = ["bundle", "exec", "rake", "release", "--dry-run"]


@dataclass(frozen=True)
class GemSpec:
    """The parts of a gemspec needed to configure publishing."""

    name: str
    homepage: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GitHubRepository:
    """An owner/name pair on GitHub."""

    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


def find_gemspec_files(repository: Path) -> List[Path]:
    """Gemspecs in the repository root or one directory below, as Bundler finds them."""
    root = Path(repository)
    found = sorted(root.glob("*.gemspec")) + sorted(root.glob("*/*.gemspec"))
    return [p for p in found if p.is_file()]


def load_gemspec(path: Path) -> GemSpec:
    """
    Evaluate a gemspec with Ruby.

    Raises:
        PreconditionError: If ruby is missing or the gemspec does not load
    """
    path = Path(path).resolve()
    if shutil.which("ruby") is None:
        raise PreconditionError("Ruby is required to read gemspecs, but `ruby` was not found")

    result = subprocess.run(
        ["ruby", "-rjson", "-e", GEMSPEC_TO_JSON, str(path)],
        capture_output=True,
        text=True,
        cwd=path.parent,
    )
    if result.returncode != 0:
        raise PreconditionError(
            f"Failed to load {path}:\n{result.stdout}{result.stderr}"
        )

    data = json.loads(result.stdout)
    return GemSpec(
        name=data["name"],
        homepage=data.get("homepage"),
        metadata=data.get("metadata") or {},
    )


def load_gemspecs(repository: Path) -> List[GemSpec]:
    return [load_gemspec(path) for path in find_gemspec_files(repository)]


def select_gemspec(
    specs: List[GemSpec], repository: Path, name: Optional[str] = None
) -> GemSpec:
    """
    Pick the gemspec to configure.

    Without a name there must be exactly one gemspec. With a name, the
    gemspec of that name is preferred, falling back to the only/first one.

    Raises:
        PreconditionError: If there is no gemspec, or several and no name
    """
    if not specs:
        if name is not None:
            raise PreconditionError(f"No gemspecs found in {repository} for {name}")
        raise PreconditionError(
            f"No gemspecs found in {repository}, please specify the gem name with --name"
        )

    if name is None:
        if len(specs) > 1:
            raise PreconditionError(
                f"Multiple gemspecs found in {repository}, please specify the gem name with --name"
            )
        return specs[0]

    for spec in specs:
        if spec.name == name:
            return spec
    return specs[0]


def resolve_github_repository(spec: GemSpec) -> GitHubRepository:
    """
    Find the GitHub repository a gem lives in.

    Checks source_code_uri, homepage_uri and bug_tracker_uri metadata, then
    the homepage; the first GitHub URL wins.

    Raises:
        PreconditionError: If none of them points at GitHub
    """
    candidates = [spec.metadata.get(key) for key in REPOSITORY_URI_KEYS]
    candidates.append(spec.homepage)

    for uri in candidates:
        if not uri:
            continue
        match = GITHUB_URI.search(uri)
        if match:
            repository = GitHubRepository(match.group("owner"), match.group("repo"))
            if not (
                GITHUB_NAME.match(repository.owner) and GITHUB_NAME.match(repository.name)
            ):
                raise PreconditionError(
                    f"Unsupported GitHub repository {repository.slug!r} in {uri} for {spec.name}"
                )
            return repository

    raise PreconditionError(f"No GitHub repository found for {spec.name}")


def verify_release_task(repository: Path, gem_name: str) -> None:
    """
    Check that `rake release` is set up, using its dry-run mode.

    Raises:
        PreconditionError: If the dry run fails
    """
    try:
        result = subprocess.run(
            RELEASE_DRY_RUN,
            cwd=repository,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except FileNotFoundError:
        raise PreconditionError(
            "Bundler is required to check the release task, but `bundle` was not found"
        )

    if result.returncode != 0:
        raise PreconditionError(
            f"bundle exec rake release is not configured for {gem_name} in {repository}:\n"
            f"{result.stdout}"
        )
