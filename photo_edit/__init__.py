"""Generative photo editing: orchestration of edit, inpaint, prompt and analysis calls."""

__version__ = "1.0.0"
