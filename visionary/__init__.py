"""Visionary: generate, edit and refine images with Gemini."""

__version__ = "1.0.0"
