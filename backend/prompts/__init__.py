"""
Prompt templates for artifact personas
"""

from backend.prompts.base import PersonaPromptBuilder

__all__ = ["PersonaPromptBuilder"]
