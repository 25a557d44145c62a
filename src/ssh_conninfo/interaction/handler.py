"""Keyboard-interactive challenge handlers.

paramiko drives keyboard-interactive authentication by calling a handler with
``(title, instructions, prompt_list)`` and expecting one answer per prompt.
The handlers here implement that callable interface.
"""

from __future__ import annotations

import getpass
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple

from ..utils.secret import SecretString

logger = logging.getLogger(__name__)

PASSWORD_KEYWORDS = ("password", "passcode", "passphrase")


@dataclass(frozen=True)
class ChallengePrompt:
    """One prompt sent by the server."""

    text: str
    echo: bool = False

    @property
    def asks_for_password(self) -> bool:
        lowered = self.text.lower()
        return any(keyword in lowered for keyword in PASSWORD_KEYWORDS)


@dataclass(frozen=True)
class Challenge:
    """A single keyboard-interactive round."""

    title: str = ""
    instructions: str = ""
    prompts: Tuple[ChallengePrompt, ...] = ()

    @classmethod
    def from_paramiko(
        cls, title: str, instructions: str, prompt_list: Sequence[Tuple[str, bool]]
    ) -> "Challenge":
        return cls(
            title=title or "",
            instructions=instructions or "",
            prompts=tuple(ChallengePrompt(text, bool(echo)) for text, echo in prompt_list),
        )

    def format_prompt(self) -> str:
        """Format the challenge header for display."""
        lines = []
        if self.title:
            lines.append(self.title)
        if self.instructions:
            lines.append(self.instructions)
        return "\n".join(lines)


class ChallengeHandler(ABC):
    """Answers keyboard-interactive challenges."""

    def __call__(
        self, title: str, instructions: str, prompt_list: Sequence[Tuple[str, bool]]
    ) -> List[str]:
        challenge = Challenge.from_paramiko(title, instructions, prompt_list)
        answers = self.respond(challenge)
        if len(answers) != len(challenge.prompts):
            raise ValueError(
                f"{type(self).__name__} returned {len(answers)} answers "
                f"for {len(challenge.prompts)} prompts"
            )
        return answers

    @abstractmethod
    def respond(self, challenge: Challenge) -> List[str]:
        """
        Answer every prompt of ``challenge``.

        Args:
            challenge: The prompts sent by the server

        Returns:
            One answer per prompt, in prompt order
        """
        pass


class CLIChallengeHandler(ChallengeHandler):
    """Terminal handler; hidden prompts are read with getpass."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        secret_func: Callable[[str], str] = getpass.getpass,
    ) -> None:
        self._input = input_func
        self._secret = secret_func

    def respond(self, challenge: Challenge) -> List[str]:
        header = challenge.format_prompt()
        if header:
            print(header)
        answers = []
        for prompt in challenge.prompts:
            reader = self._input if prompt.echo else self._secret
            answers.append(reader(prompt.text))
        return answers


class CallbackChallengeHandler(ChallengeHandler):
    """
    Handler that delegates to a callback.
    Useful for GUI or web front ends.
    """

    def __init__(self, callback: Callable[[Challenge], List[str]]) -> None:
        self.callback = callback

    def respond(self, challenge: Challenge) -> List[str]:
        return list(self.callback(challenge))


@dataclass(eq=True)
class PasswordChallengeHandler(ChallengeHandler):
    """
    Non-interactive handler answering password prompts with a stored secret.

    Prompts that do not ask for a password are matched against
    ``responses`` (keyword -> answer); anything else gets an empty answer.
    """

    secret: SecretString
    responses: Dict[str, str] = field(default_factory=dict)

    def respond(self, challenge: Challenge) -> List[str]:
        answers = []
        for prompt in challenge.prompts:
            if prompt.asks_for_password:
                with self.secret.reveal() as password:
                    answers.append(password)
                continue
            answers.append(self._lookup(prompt))
        return answers

    def _lookup(self, prompt: ChallengePrompt) -> str:
        for keyword, response in self.responses.items():
            if keyword.lower() in prompt.text.lower():
                return response
        logger.info("No stored answer for prompt %r, sending empty response", prompt.text)
        return ""
