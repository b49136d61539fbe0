"""Prompt templates for the classification and summary backends."""

from radar.prompts.loader import load_prompt, render_prompt

__all__ = ["load_prompt", "render_prompt"]
