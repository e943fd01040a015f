"""AI review generation."""
