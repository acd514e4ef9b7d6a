"""Prompt templating helpers."""
from __future__ import annotations
import re
from dataclasses import dataclass
from pathlib import Path

# Layout used by the first version of the tool for instruct-tuned models.
ROLE_TEMPLATE = "SYSTEM: {{system}}\nUSER: {{input}}\nASSISTANT:"

BUILTIN_TEMPLATES = {"roles": ROLE_TEMPLATE}

DEFAULT_SEPARATOR = "\n"

# Both placeholders are substituted in one pass so inserted text is never rescanned.
PLACEHOLDER_RE = re.compile(r"\{\{(system|input)\}\}")


@dataclass(frozen=True)
class PromptFormat:
    """How the system prompt and user prompt are joined."""
    separator: str = DEFAULT_SEPARATOR
    template: str | None = None


def load_template(path: str | Path) -> str:
    """
    Load a prompt template file.

    Args:
        path: Path to template.
    """
    return Path(path).read_text(encoding="utf-8")

def render_prompt(template: str, user_input: str, system_prompt: str | None = None) -> str:
    """
    Render user input and system prompt into the template.

    Args:
        template: Template content containing {{input}} and optionally {{system}}.
        user_input: Input string.
        system_prompt: Replaces {{system}}; an unset system prompt renders as "".

    Returns:
        Rendered prompt.
    """
    values = {"system": system_prompt or "", "input": user_input}
    return PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)

def combine_prompt(prompt: str, system_prompt: str | None = None, fmt: PromptFormat | None = None) -> str:
    """Build the single prompt string sent to the endpoint."""
    fmt = fmt or PromptFormat()
    if fmt.template is not None:
        return render_prompt(fmt.template, prompt, system_prompt)
    if system_prompt:
        return f"{system_prompt}{fmt.separator}{prompt}"
    return prompt
