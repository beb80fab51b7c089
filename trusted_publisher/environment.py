"""GitHub environment provisioning through the GitHub CLI."""

import json
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .errors import HostCliError, PreconditionError

GH_INSTALL_URL = "https://cli.github.com/"


@dataclass(frozen=True)
class Environment:
    """A deployment environment on a GitHub repository."""

    name: str
    url: str
    created: bool = field(default=False, compare=False)


class GitHubCLI:
    """Thin wrapper over `gh api`."""

    def __init__(self, executable: str = "gh"):
        self.executable = executable

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def api(self, path: str, method: Optional[str] = None, failure: str = "") -> Any:
        """
        Call the GitHub REST API and decode the JSON reply.

        Args:
            path: API path, e.g. repos/owner/repo/environments
            method: HTTP method, gh defaults to GET
            failure: Message used if the command fails

        Raises:
            HostCliError: If gh exits non-zero or prints something other than JSON
        """
        cmd: List[str] = [self.executable, "api"]
        if method:
            cmd += ["--method", method]
        cmd.append(path)

        result = subprocess.run(cmd, capture_output=True, text=True)

        if result.returncode != 0:
            output = "".join(part for part in (result.stdout, result.stderr) if part)
            raise HostCliError(failure or f"Failed to call {path}", "gh api", output)

        if not result.stdout.strip():
            return {}
        try:
            return json.loads(result.stdout)
        except ValueError:
            raise HostCliError(
                failure or f"Failed to call {path}", "gh api", f"Unexpected output:\n{result.stdout}"
            )


class EnvironmentProvisioner:
    """Makes sure the release environment exists on the repository."""

    def __init__(self, gh: Optional[GitHubCLI] = None):
        self.gh = gh or GitHubCLI()

    def find_environment(self, owner: str, repo: str, name: str) -> Optional[Environment]:
        """
        Look up an environment by name.

        Raises:
            HostCliError: If the lookup itself fails
        """
        data = self.gh.api(
            f"repos/{owner}/{repo}/environments",
            failure=f"Failed to list environments for {owner}/{repo}",
        )
        environments = data.get("environments") if isinstance(data, dict) else data
        if not isinstance(environments, (list, type(None))):
            raise HostCliError(
                f"Failed to list environments for {owner}/{repo}",
                "gh api",
                f"Unexpected output:\n{json.dumps(data)}",
            )
        for env in environments or []:
            if isinstance(env, dict) and env.get("name") == name:
                return Environment(name=name, url=env.get("html_url", ""))
        return None

    def create_environment(self, owner: str, repo: str, name: str) -> Environment:
        """
        Create (or update) an environment.

        Raises:
            HostCliError: If gh fails
        """
        data = self.gh.api(
            f"repos/{owner}/{repo}/environments/{name}",
            method="PUT",
            failure=f"Failed to create {name} environment for {owner}/{repo}",
        )
        url = data.get("html_url", "") if isinstance(data, dict) else ""
        return Environment(name=name, url=url, created=True)

    def ensure_environment(self, owner: str, repo: str, name: str) -> Environment:
        """
        Return the named environment, creating it if it does not exist.

        Args:
            owner: Repository owner
            repo: Repository name
            name: Environment name

        Returns:
            The existing or newly created environment

        Raises:
            PreconditionError: If the gh executable is not installed
            HostCliError: If listing or creating fails
        """
        if not self.gh.is_available():
            raise PreconditionError(
                "The GitHub CLI (gh) is required to add a GitHub environment. "
                f"Please install it from {GH_INSTALL_URL} and try again."
            )

        existing = self.find_environment(owner, repo, name)
        if existing is not None:
            return existing

        return self.create_environment(owner, repo, name)
