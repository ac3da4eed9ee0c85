"""Badminton Alphabet skill-progress tracking backend."""

__version__ = "0.1.0"
