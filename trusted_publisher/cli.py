"""Command-line interface for trusted publisher configuration."""

import click
import requests
import sys
from pathlib import Path
from . import __version__
from .config import load_config, load_default_config, ConfigError
from .configurator import TrustedPublisherConfigurator
from .errors import ConfigureError
from .prompt import ClickPrompter


@click.group(name="configure_trusted_publisher")
@click.version_option(version=__version__)
def main():
    """Configure OIDC trusted publishing for your packages."""
    pass


@main.command()
@click.argument(
    "repository",
    required=False,
    default=".",
    type=click.Path(exists=True, file_okay=False),
)
@click.option(
    "--name",
    help="The name of the Rubygem to configure the trusted publisher for.",
)
@click.option(
    "--otp",
    help="The one-time password for multi-factor authentication.",
)
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file (YAML). Defaults to .trusted-publisher/config.yaml if present.",
)
def rubygem(repository, name, otp, config):
    """Configure a RubyGems.org trusted publisher for REPOSITORY."""
    try:
        if config:
            publisher_config = load_config(config)
            click.echo(f"Loaded config: {config}")
        else:
            publisher_config = load_default_config(Path(repository))
        publisher_config = publisher_config.apply_environment_overrides()
    except (FileNotFoundError, ConfigError) as e:
        click.echo(f"❌ Config error: {e}", err=True)
        sys.exit(1)

    configurator = TrustedPublisherConfigurator(
        publisher_config,
        ClickPrompter(),
        otp=otp,
    )

    try:
        configurator.configure(repository, name)
    except ConfigureError as e:
        click.echo(f"\n❌ {e}", err=True)
        sys.exit(1)
    except requests.RequestException as e:
        click.echo(f"\n❌ Request to {publisher_config.registry_host} failed: {e}", err=True)
        sys.exit(1)
    except click.Abort:
        raise
    except Exception as e:
        click.echo(f"\n❌ Configuration failed: {e}", err=True)
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
