"""Resolve the per-invocation configuration from CLI input and an optional YAML file."""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TextIO
from urllib.parse import urlparse

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from llm_prompt.common.templates import BUILTIN_TEMPLATES, DEFAULT_SEPARATOR, PromptFormat, load_template
from llm_prompt.errors import UsageError

DEFAULT_MODEL = "brucethemoose/Capybara-Tess-Yi-34B-200K-DARE-Ties"
DEFAULT_ENDPOINT = "http://localhost:7000/v1/completions"
DEFAULT_MAX_TOKENS = 10000


@dataclass(frozen=True)
class GenerationParams:
    """Sampling parameters sent with every request. ``None`` means "server default"."""
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float | None = None
    top_p: float | None = None
    stop: tuple[str, ...] | None = None


@dataclass(frozen=True)
class Configuration:
    model: str
    endpoint: str
    prompt: str
    system_prompt: str | None = None
    debug: bool = False
    generation: GenerationParams = field(default_factory=GenerationParams)
    prompt_format: PromptFormat = field(default_factory=PromptFormat)
    timeout: float | None = None


class FileSettings(BaseModel):
    """Schema of the optional ``--config`` YAML file."""
    model_config = ConfigDict(extra="forbid")

    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    temperature: float | None = Field(default=None, ge=0)
    top_p: float | None = Field(default=None, gt=0, le=1)
    stop: list[str] | None = None
    timeout: float | None = Field(default=None, gt=0)
    separator: str = DEFAULT_SEPARATOR
    template: str | None = None
    template_path: Path | None = None


def load_cfg(path: str | Path) -> FileSettings:
    """
    Load and validate a YAML settings file.

    Args:
        path: YAML file with generation and prompt-format keys.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw: Any = yaml.safe_load(f)
    except UnicodeDecodeError as e:
        raise UsageError(f"config file {path} is not valid UTF-8") from e
    except OSError as e:
        raise UsageError(f"cannot read config file {path}: {e.strerror}") from e
    except yaml.YAMLError as e:
        raise UsageError(f"invalid YAML in config file {path}: {e}") from e
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise UsageError(f"config file {path} must contain a mapping")
    try:
        return FileSettings.model_validate(raw)
    except ValidationError as e:
        raise UsageError(f"invalid config file {path}: {e}") from e


def prompt_format_from(settings: FileSettings) -> PromptFormat:
    if settings.template is not None and settings.template_path is not None:
        raise UsageError("config file may set 'template' or 'template_path', not both")
    template = settings.template
    if template is not None:
        template = BUILTIN_TEMPLATES.get(template, template)
    elif settings.template_path is not None:
        try:
            template = load_template(settings.template_path)
        except UnicodeDecodeError as e:
            raise UsageError(f"template {settings.template_path} is not valid UTF-8") from e
        except OSError as e:
            raise UsageError(f"cannot read template {settings.template_path}: {e.strerror}") from e
    if template is not None and "{{input}}" not in template:
        raise UsageError("prompt template must contain {{input}}")
    return PromptFormat(separator=settings.separator, template=template)


def validate_endpoint(url: str | None) -> str:
    if not url or not url.strip():
        raise UsageError("no endpoint given")
    url = url.strip()
    try:
        parsed = urlparse(url)
        parsed.port  # ValueError on a non-numeric or out-of-range port
        httpx.URL(url)
    except (ValueError, httpx.InvalidURL) as e:
        raise UsageError(f"malformed endpoint URL {url!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise UsageError(f"endpoint must be an http(s) URL, got {url!r}")
    return url


def resolve_prompt(words: list[str], use_stdin: bool, stdin: TextIO) -> str:
    """
    Work out the user prompt.

    Positional words are joined with spaces. With ``use_stdin`` the whole of
    stdin is the prompt (one trailing newline trimmed); any positional words
    go on the line before it, as an instruction for the piped text.
    """
    prompt = " ".join(words)
    if use_stdin:
        try:
            data = stdin.read()
        except UnicodeDecodeError as e:
            raise UsageError("standard input is not valid UTF-8") from e
        if data.endswith("\r\n"):
            data = data[:-2]
        elif data.endswith("\n"):
            data = data[:-1]
        prompt = f"{prompt}\n{data}" if prompt else data
    if not prompt.strip():
        raise UsageError("no prompt given (pass PROMPT or use --stdin)")
    return prompt


def build_configuration(
    *,
    model: str,
    endpoint: str | None,
    prompt: str | Callable[[], str],
    system_prompt: str | None = None,
    debug: bool = False,
    config_path: str | Path | None = None,
) -> Configuration:
    """
    Validate inputs and produce the immutable configuration for one request.

    ``prompt`` may be a callable (e.g. one that reads stdin); it is only
    called once the model, endpoint and config file have been validated.
    """
    if not model or not model.strip():
        raise UsageError("no model given")
    endpoint = validate_endpoint(endpoint)
    settings = load_cfg(config_path) if config_path is not None else FileSettings()
    prompt_format = prompt_format_from(settings)
    if callable(prompt):
        prompt = prompt()
    generation = GenerationParams(
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        top_p=settings.top_p,
        stop=tuple(settings.stop) if settings.stop is not None else None,
    )
    return Configuration(
        model=model.strip(),
        endpoint=endpoint,
        prompt=prompt,
        system_prompt=system_prompt or None,
        debug=debug,
        generation=generation,
        prompt_format=prompt_format,
        timeout=settings.timeout,
    )
