"""Vacancy Bot — Classification Prompt.

Builds the single prompt sent to the AI for each vacancy page: the page
text, the user's filters, the rules for applying them, and the JSON
shape of the expected answer.
"""

from __future__ import annotations

import json
from typing import Any, Mapping


def build_classification_prompt(text: str, filters: Mapping[str, Any]) -> str:
    """Build the vacancy screening prompt.

    Args:
        text: Visible page text, already truncated by the caller.
        filters: The user's filter set, serialized verbatim.

    Returns:
        Complete prompt string.
    """
    filters_json = json.dumps(dict(filters), ensure_ascii=False)

    return f"""Ти HR-асистент. Проаналізуй текст вакансії.

=== ТЕКСТ ВАКАНСІЇ ===
\"\"\"{text}\"\"\"

=== ФІЛЬТРИ КОРИСТУВАЧА ===
{filters_json}

=== ПРАВИЛА ===
1. Якщо "salary_only": true, а цифр зарплати немає -> valid: false.
2. Якщо "remote_only": true, а робота в офісі -> valid: false.
3. Якщо текст не є вакансією (список, реклама, помилка) -> valid: false.

Відповідай ТІЛЬКИ JSON-об'єктом без markdown:
{{ "valid": boolean, "reason": "...", "summary": "Короткий опис українською (2-3 речення)" }}"""
