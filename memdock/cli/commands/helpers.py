"""Shared helper functions for CLI commands: prompts and output."""

import json
import sys
from typing import Any, Callable


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    print(json.dumps(data, indent=2, default=str))


def _read(prompt: str) -> str:
    print(prompt, end="", flush=True)
    try:
        return input().strip()
    except (EOFError, KeyboardInterrupt):
        print("\nAborted.")
        sys.exit(1)


def ask_yes_no(prompt: str, default: bool = True) -> bool:
    """Ask a yes/no question. Empty input takes the default."""
    suffix = "[Y/n]" if default else "[y/N]"
    answer = _read(f"{prompt} {suffix}: ").lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def ask_text(prompt: str, default: str = "") -> str:
    """Ask for free text, showing the default in brackets."""
    shown = f"{prompt} [{default}]: " if default else f"{prompt}: "
    return _read(shown) or default


def ask_raw(prompt: str) -> str:
    """Return the operator's answer verbatim (used for exact-token confirmations)."""
    return _read(prompt)


def auto_confirm(assume_yes: bool) -> Callable[[str], bool]:
    """Return a confirm callable; ``--yes`` answers every question with yes."""
    if assume_yes:
        return lambda _prompt: True
    return ask_yes_no


def auto_prompt(assume_yes: bool) -> Callable[[str, str], str]:
    """Return a prompt callable; ``--yes`` accepts every default."""
    if assume_yes:
        return lambda _prompt, default: default
    return ask_text
