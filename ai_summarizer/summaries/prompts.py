"""The fixed instruction template sent with every summary request."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

TEXT_PLACEHOLDER = "{{text}}"
DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parent / "templates" / "default.md"


class PromptValidationError(ValueError):
    """Raised when a prompt template fails validation checks."""


@dataclass(frozen=True)
class PromptDocument:
    content: str
    path: Path

    def render(self, text: str) -> str:
        """Embed ``text`` into the template."""
        return self.content.replace(TEXT_PLACEHOLDER, text)


def load_prompt(path: Optional[Path] = None) -> PromptDocument:
    """Read and validate the packaged template (or ``path``, for tests)."""
    path = path or DEFAULT_TEMPLATE_PATH
    content = path.read_text(encoding="utf-8")
    validate_template(content, path)
    return PromptDocument(content=content.strip(), path=path)


def validate_template(content: str, path: Path) -> None:
    open_tokens = content.count("{{")
    close_tokens = content.count("}}")
    if open_tokens != close_tokens:
        raise PromptValidationError(
            f"Prompt '{path}' has mismatched template braces: {open_tokens} '{{{{' vs {close_tokens} '}}}}'."
        )
    if TEXT_PLACEHOLDER not in content:
        raise PromptValidationError(f"Prompt '{path}' does not include the '{TEXT_PLACEHOLDER}' placeholder.")
