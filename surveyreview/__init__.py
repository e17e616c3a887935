"""
Survey Response Review

In-memory review engine for auditing field-collected survey submissions:
drill from surveys to respondents to submissions, and assign approval verdicts.
"""

__version__ = "1.0.0"
