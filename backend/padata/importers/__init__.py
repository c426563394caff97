"""Assessment file import pipeline."""
