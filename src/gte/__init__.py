"""Grievance triage engine: ward resolution, duplicate grouping and scoring."""

__version__ = "0.1.0"
