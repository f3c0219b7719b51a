"""Sub-agents package."""
from .suggestion_agent import suggest_edits
from .refinement_agent import refine_prompt

__all__ = ['suggest_edits', 'refine_prompt']
