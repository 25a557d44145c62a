"""Keyboard-interactive challenge handling."""

from .handler import (
    CallbackChallengeHandler,
    Challenge,
    ChallengeHandler,
    ChallengePrompt,
    CLIChallengeHandler,
    PasswordChallengeHandler,
)

__all__ = [
    "CallbackChallengeHandler",
    "Challenge",
    "ChallengeHandler",
    "ChallengePrompt",
    "CLIChallengeHandler",
    "PasswordChallengeHandler",
]
