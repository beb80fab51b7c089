"""Drives the whole trusted publisher setup for one gem."""

from pathlib import Path
from typing import Callable, Optional

from .auth import RegistryAuthClient
from .config import PublisherConfig
from .environment import EnvironmentProvisioner
from .project import (
    GitHubRepository,
    load_gemspecs,
    resolve_github_repository,
    select_gemspec,
    verify_release_task,
)
from .prompt import Prompter
from .publishers import (
    ExistingPublisherRecord,
    TrustedPublisherRepository,
    TrustedPublisherSpec,
)
from .workflow import WorkflowEnvironment, ask_trigger_mode, render, workflow_path, write


class TrustedPublisherConfigurator:
    """Coordinates environment, workflow and registry configuration."""

    def __init__(
        self,
        config: PublisherConfig,
        prompter: Prompter,
        auth_client: Optional[RegistryAuthClient] = None,
        provisioner: Optional[EnvironmentProvisioner] = None,
        gemspec_loader: Callable[[Path], list] = load_gemspecs,
        release_check: Callable[[Path, str], None] = verify_release_task,
        otp: Optional[str] = None,
    ):
        """
        Initialize configurator.

        Args:
            config: Registry host, environment name and workflow file name
            prompter: Operator interaction
            auth_client: Registry auth client (default: one for config.registry_host)
            provisioner: GitHub environment provisioner
            gemspec_loader: Loads gemspecs from a repository directory
            release_check: Checks the release task of a repository
            otp: One-time password supplied up front
        """
        self.config = config
        self.prompter = prompter
        self.auth_client = auth_client or RegistryAuthClient(
            config.registry_host, prompter, otp=otp
        )
        self.provisioner = provisioner or EnvironmentProvisioner()
        self.gemspec_loader = gemspec_loader
        self.release_check = release_check

    def configure(
        self, repository: str = ".", gem_name: Optional[str] = None
    ) -> ExistingPublisherRecord:
        """
        Configure a trusted publisher for the gem in repository.

        Args:
            repository: Path to the gem's git checkout
            gem_name: Gem name, required when the repository has several gemspecs

        Returns:
            The trusted publisher created on the registry

        Raises:
            ConfigureError: On any fatal condition; nothing is written to the
                registry unless every earlier step succeeded
        """
        root = Path(repository)
        gemspec = select_gemspec(self.gemspec_loader(root), repository, gem_name)
        gem_name = gem_name or gemspec.name

        self.release_check(root, gem_name)

        # Resolved once; the environment, the workflow guard and the
        # registry record must all agree on it.
        github = resolve_github_repository(gemspec)
        self.prompter.say(
            f"Configuring trusted publisher for {gem_name} in {root.resolve()} for {github.slug}"
        )

        environment = self.add_environment(github)
        self.write_release_workflow(root, gem_name, github, environment)

        spec = TrustedPublisherSpec(
            repository_owner=github.owner,
            repository_name=github.name,
            environment=environment,
            workflow_filename=self.config.workflow_filename,
        )

        credential = self.auth_client.authenticate()
        publishers = TrustedPublisherRepository(self.auth_client, credential)
        record = publishers.ensure(gem_name, spec)

        self.prompter.say(
            f"Successfully configured trusted publisher for {gem_name}:\n"
            f"  {self.trusted_publishers_url(gem_name)}"
        )
        return record

    def add_environment(self, github: GitHubRepository) -> Optional[str]:
        """
        Offer to create the GitHub environment guarding the release job.

        Returns:
            The environment name, or None if the operator declined
        """
        self.prompter.say()
        if not self.prompter.ask_yes_no(
            "Would you like to add a github environment to allow customizing "
            "prerequisites for the action?",
            default=False,
        ):
            return None

        name = self.config.environment_name
        self.prompter.say(f"Adding GitHub environment to {github.slug} to protect the action")
        env = self.provisioner.ensure_environment(github.owner, github.name, name)

        self.prompter.say()
        if env.created:
            self.prompter.say(f"Created environment '{name}' for {github.slug}:\n  {env.url}")
        else:
            self.prompter.say(f"Environment '{name}' already exists for {github.slug}:\n  {env.url}")
        return name

    def write_release_workflow(
        self,
        root: Path,
        gem_name: str,
        github: GitHubRepository,
        environment: Optional[str] = None,
    ) -> bool:
        """
        Render the release workflow and write it into the repository.

        Returns:
            True if written, False if the operator kept an existing file
        """
        trigger_mode = ask_trigger_mode(self.prompter, gem_name)

        binding = None
        if environment:
            binding = WorkflowEnvironment(environment, self.gem_url(gem_name))

        path = workflow_path(root, self.config.workflow_filename)
        if not write(path, render(trigger_mode, github, binding), self.prompter):
            self.prompter.say(f"Keeping existing {path}")
            return False

        self.prompter.say(f"Created {path}")
        return True

    def gem_url(self, gem_name: str) -> str:
        return f"{self.config.registry_host}/gems/{gem_name}"

    def trusted_publishers_url(self, gem_name: str) -> str:
        return f"{self.gem_url(gem_name)}/trusted_publishers"
