"""Image prompt preparation and rewrite templates.

Image prompts are whitespace-normalized and truncated before they are sent.
When a provider returns no image, the rewrite step asks the text model for a
shorter prompt that image models accept more readily.

Examples:
    >>> from gateway.prompts.image_rewrite import get_prompt, normalize_prompt
    >>> normalize_prompt("  a   red\\n fox ")
    'a red fox'
"""

import re

MAX_IMAGE_PROMPT_CHARS = 900
MAX_REWRITTEN_PROMPT_CHARS = 220

USER_PROMPT_TEMPLATE = """Rewrite the following image request as a single short prompt for an
image generation model.

Rules:
- At most {max_chars} characters
- Plain descriptive language: subject, setting, style, lighting
- Remove names of real people, brands and anything violent or explicit
- Output only the prompt, no quotes and no commentary

Request:
{prompt}"""


def normalize_prompt(prompt: str, max_chars: int = MAX_IMAGE_PROMPT_CHARS) -> str:
    """Collapse whitespace and truncate to max_chars."""
    collapsed = re.sub(r"\s+", " ", prompt or "").strip()
    return collapsed[:max_chars].rstrip()


def clean_rewrite(text: str) -> str:
    """Strip quotes/labels a model may wrap around the rewritten prompt."""
    cleaned = normalize_prompt(text, max_chars=len(text) + 1)
    cleaned = re.sub(r"^(prompt|rewritten prompt)\s*:\s*", "", cleaned, flags=re.IGNORECASE)
    cleaned = cleaned.strip("\"'` ")
    return cleaned[:MAX_REWRITTEN_PROMPT_CHARS].rstrip()


def get_prompt(prompt: str) -> str:
    """Get the rewrite request for an image prompt.

    Args:
        prompt: The normalized prompt that produced no image

    Returns:
        Formatted user prompt
    """
    return USER_PROMPT_TEMPLATE.format(prompt=prompt, max_chars=MAX_REWRITTEN_PROMPT_CHARS)
