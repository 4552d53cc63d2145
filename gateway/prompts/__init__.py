"""Prompt templates used by the fallback steps.

Examples:
    >>> from gateway.prompts import image_rewrite
    >>> prompt = image_rewrite.get_prompt("a red fox in snow")
"""

from gateway.prompts import image_rewrite

__all__ = ["image_rewrite"]
