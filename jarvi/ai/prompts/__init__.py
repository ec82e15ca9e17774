"""Prompt templates for the generative backends."""
