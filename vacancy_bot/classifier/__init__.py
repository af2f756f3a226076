"""Vacancy Bot — Classifier Package.

AI screening of vacancy pages against the user's filters.
Components:
  - GroqClient: Groq chat completions client
  - Classifier: local short-circuit rules + AI verdict
  - parse_verdict / format_summary: response validation and display
"""

from vacancy_bot.classifier.groq_client import (
    ClassifierError,
    ClassifierResponseError,
    ClassifierTransportError,
    GroqClient,
)
from vacancy_bot.classifier.classifier import Classifier, VacancyClassifier
from vacancy_bot.classifier.response_parser import format_summary, parse_verdict

__all__ = [
    "ClassifierError",
    "ClassifierResponseError",
    "ClassifierTransportError",
    "GroqClient",
    "Classifier",
    "VacancyClassifier",
    "format_summary",
    "parse_verdict",
]
