"""Prompt templates for the review pipeline."""
