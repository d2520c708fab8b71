"""Concatenate the text sources of a repository into one LLM-friendly document."""

__version__ = "0.2.0"
