"""Interactive prompting used by the configuration flow."""

from abc import ABC, abstractmethod
from typing import List

import click


class Prompter(ABC):
    """Abstract interface for talking to the operator."""

    @abstractmethod
    def say(self, message: str = "") -> None:
        """Print a line of output."""
        pass

    @abstractmethod
    def ask(self, question: str) -> str:
        """
        Ask a free-form question.

        Args:
            question: Question text, without trailing colon

        Returns:
            The answer as entered
        """
        pass

    @abstractmethod
    def ask_secret(self, question: str) -> str:
        """Ask a question without echoing the answer."""
        pass

    @abstractmethod
    def ask_yes_no(self, question: str, default: bool = True) -> bool:
        """
        Ask a yes/no question.

        Args:
            question: Question text
            default: Answer used when the operator just hits enter

        Returns:
            True for yes
        """
        pass

    @abstractmethod
    def ask_choice(self, question: str, choices: List[str], default: int = 1) -> str:
        """
        Ask the operator to pick one of several choices.

        Args:
            question: Question text
            choices: Choice labels, shown numbered from 1
            default: 1-based index of the default choice

        Returns:
            The label of the selected choice
        """
        pass


class ClickPrompter(Prompter):
    """Terminal prompter backed by click."""

    def say(self, message: str = "") -> None:
        click.echo(message)

    def ask(self, question: str) -> str:
        click.echo()
        return click.prompt(_clean(question))

    def ask_secret(self, question: str) -> str:
        click.echo()
        return click.prompt(_clean(question), hide_input=True)

    def ask_yes_no(self, question: str, default: bool = True) -> bool:
        return click.confirm(question, default=default)

    def ask_choice(self, question: str, choices: List[str], default: int = 1) -> str:
        click.echo(question)
        for idx, label in enumerate(choices, start=1):
            click.echo(f"  {idx}) {label}")
        selected = click.prompt(
            "Choice",
            type=click.IntRange(1, len(choices)),
            default=default,
        )
        return choices[selected - 1]


def _clean(question: str) -> str:
    """Strip trailing whitespace and colon, click adds its own."""
    return question.strip().rstrip(":")
