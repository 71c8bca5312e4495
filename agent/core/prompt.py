from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, ValidationError


SYSTEM_PROMPT = """You are a friendly AI assistant engaging in casual conversation. Please respond in a helpful and appropriate manner.

Key Characteristics:
- Friendly and professional demeanor
- Helpful and informative responses
- Family-friendly content only
- Focus on positive interactions

Guidelines:
1. Keep responses appropriate and friendly
2. Avoid controversial topics
3. Stay focused on helpful information
4. Maintain professional boundaries

Please respond to the user's message in a helpful and appropriate way."""

SEED_INSTRUCTION = "Please respond as {name}, maintaining character throughout the conversation."
REPLAY_INSTRUCTION = "Please respond as {name}, keeping your character traits in mind."
FINAL_INSTRUCTION = "Please provide a helpful and appropriate response."


class PersonaLoadError(RuntimeError):
    """Raised when the persona descriptor cannot be read or parsed."""


class PersonaDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    description: Any = None
    personality: Any = None
    instructions: Any = None


def load_persona(path: Union[str, Path]) -> PersonaDescriptor:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return PersonaDescriptor.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise PersonaLoadError(f"Failed to load persona from {path}: {exc}") from exc


def create_system_prompt(persona: PersonaDescriptor) -> str:
    """Render the persona preamble sent as the first turn of every session.

    The emitted text is fixed; the tone rules are the same for every
    persona file.
    """
    return SYSTEM_PROMPT


def seed_turn(system_prompt: str, persona_name: str) -> str:
    return f"{system_prompt}\n\n{SEED_INSTRUCTION.format(name=persona_name)}"


def replay_turn(message: str, persona_name: str) -> str:
    return f"User: {message}\n{REPLAY_INSTRUCTION.format(name=persona_name)}"


def final_turn(message: str) -> str:
    return f"User: {message}\n{FINAL_INSTRUCTION}"
