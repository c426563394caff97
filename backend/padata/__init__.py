"""Pennsylvania assessment results import pipeline."""
