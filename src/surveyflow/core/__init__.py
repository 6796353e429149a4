"""Core survey graph models and exceptions."""
