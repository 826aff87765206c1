"""Core models, errors, logging and privilege helpers."""
