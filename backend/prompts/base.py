"""
Persona Prompt Builder - renders the artifact persona from Jinja2 templates
"""

import logging
from pathlib import Path
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from backend.schemas.artifact import PersonaAttributes

logger = logging.getLogger(__name__)


class PersonaPromptBuilder:
    """
    Builds the prompts that make an identified artifact speak in first person.

    Templates:
    - persona_system: system prompt with identity, personality and rules
    - greeting: first assistant message of a freshly created chat session
    """

    def __init__(self, templates_dir: Path | None = None):
        templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    def build_system_prompt(self, persona: PersonaAttributes) -> str:
        """
        Render the persona system prompt.

        Missing age or materials render as "tidak diketahui".

        Args:
            persona: Identification attributes of the artifact

        Returns:
            System prompt string
        """
        try:
            template = self.env.get_template("persona_system.jinja2")
            return template.render(**self._context(persona)).strip()
        except TemplateError as e:
            logger.error(f"Persona template failed, using fallback: {e}")
            return self._fallback_prompt(persona)

    def build_greeting(self, persona: PersonaAttributes) -> str:
        """Render the greeting stored as the first message of a new session."""
        try:
            template = self.env.get_template("greeting.jinja2")
            return template.render(**self._context(persona)).strip()
        except TemplateError as e:
            logger.error(f"Greeting template failed, using fallback: {e}")
            return f"Halo! Aku {persona.name}! {persona.description} 😊"

    @staticmethod
    def _context(persona: PersonaAttributes) -> dict:
        return {
            "name": persona.name,
            "category": persona.category,
            "description": persona.description,
            "history": persona.history,
            "estimated_age": persona.estimated_age,
            "materials": persona.materials,
        }

    def _fallback_prompt(self, persona: PersonaAttributes) -> str:
        """Fallback prompt if template loading fails."""
        return (
            f"Kamu adalah {persona.name}, sebuah {persona.category} yang bisa bicara dengan manusia. "
            f"{persona.description} Jawab dalam bahasa Indonesia yang santai, maksimal 200 kata, "
            f"dan jangan keluar dari karakter."
        )
