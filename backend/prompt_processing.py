"""
Prompt Builder - Template Processing

Helpers for prompt templates with {{variable}} slots: filling, variable
extraction, syntax validation, starter templates and size counters.
"""

import re
from typing import Dict, List, Any

from constants import MAX_TEMPLATE_LENGTH

VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")

DEFAULT_TEMPLATES = {
    "general": (
        "You are a {{role}} expert. Please help me with {{topic}} in a {{tone}} manner. "
        "The output should be {{outputType}}."
    ),
    "writing": (
        "As a {{role}} writer, help me create {{topic}} content with a {{tone}} tone. "
        "Please provide {{outputType}}."
    ),
    "programming": (
        "You are a {{role}} developer. Help me with {{topic}} programming. "
        "Please explain in a {{tone}} manner and provide {{outputType}}."
    ),
    "business": (
        "As a {{role}} business consultant, help me with {{topic}}. "
        "Please provide {{outputType}} in a {{tone}} manner."
    ),
    "education": (
        "You are a {{role}} educator. Help me teach {{topic}} in a {{tone}} manner. "
        "Please provide {{outputType}}."
    ),
}


def process_template(template: str, variables: Dict[str, str]) -> str:
    """Replace each {{name}} with its value. Blank values become [name]."""
    result = template
    for key, value in variables.items():
        placeholder = "{{" + key + "}}"
        replacement = value if value and str(value).strip() else f"[{key}]"
        result = result.replace(placeholder, str(replacement))
    return result


def extract_variables(template: str) -> List[str]:
    """Unique variable names in first-seen order."""
    seen: List[str] = []
    for name in VARIABLE_PATTERN.findall(template):
        if name not in seen:
            seen.append(name)
    return seen


def validate_template(template: str) -> Dict[str, Any]:
    errors = []
    warnings = []

    if template.count("{{") != template.count("}}"):
        errors.append("Unmatched braces detected in template")

    if re.search(r"\{\{\s*\}\}", template):
        errors.append("Empty variable placeholders detected")

    if len(template) > MAX_TEMPLATE_LENGTH:
        warnings.append("Template is very long and may impact performance")

    if re.search(r"[<>]", template):
        warnings.append("Template contains special characters that may need escaping")

    return {
        "is_valid": not errors,
        "errors": errors,
        "warnings": warnings,
    }


def generate_default_template(category: str = "general") -> str:
    return DEFAULT_TEMPLATES.get(category, DEFAULT_TEMPLATES["general"])


def get_character_count(template: str) -> Dict[str, int]:
    return {
        "total": len(template),
        "words": len(template.split()),
        "lines": len(template.split("\n")),
    }
