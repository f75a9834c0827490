"""
Prompt Builder - Input Sanitization Module
==========================================

Cleans user-supplied prompt text before it is sent to an LLM or stored.

Features:
- Script/style block removal (content included)
- HTML tag stripping
- Control character removal
- Whitespace normalization that keeps line breaks
- Prompt injection detection (reported, not blocked)

Usage:
    from input_sanitizer import sanitize_prompt, validate_prompt

    clean = sanitize_prompt(user_input)

    result = validate_prompt(user_input)
    if not result.valid:
        raise HTTPException(400, detail=result.reason)
"""

import re
import logging
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass, field

from constants import MAX_TEMPLATE_LENGTH

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

_SCRIPT_BLOCK = re.compile(r"<\s*(script|style)\b[^>]*>.*?<\s*/\s*\1\s*>", re.IGNORECASE | re.DOTALL)
_UNCLOSED_SCRIPT = re.compile(r"<\s*(script|style)\b[^>]*>.*$", re.IGNORECASE | re.DOTALL)
_HTML_TAG = re.compile(r"</?[a-zA-Z][^<>]*>")

# Patterns that suggest prompt injection attempts
PROMPT_INJECTION_PATTERNS = [
    r"ignore\s+(?:all\s+)?(?:previous|prior|above)\s+instructions?",
    r"disregard\s+(?:all\s+)?(?:previous|prior|above)\s+instructions?",
    r"forget\s+(?:everything|all)\s+(?:you\s+)?(?:know|learned)",
    r"you\s+are\s+now\s+(?:a\s+)?(?:new|different)",
    r"<\s*system\s*>",
    r"\[INST\]",
    r"<<SYS>>",
    r"<\|im_start\|>",
    r"### (?:Human|Assistant|System):",
]


# =============================================================================
# SANITIZATION FUNCTIONS
# =============================================================================

def strip_html(text: str) -> str:
    """Remove script/style blocks with their content, then any remaining tags."""
    text = _SCRIPT_BLOCK.sub("", text)
    text = _UNCLOSED_SCRIPT.sub("", text)
    return _HTML_TAG.sub("", text)


def remove_control_characters(text: str) -> str:
    """Drop ASCII control characters except tab, newline and carriage return."""
    return ''.join(
        char for char in text
        if (ord(char) >= 32 and ord(char) != 127) or char in '\t\n\r'
    )


def normalize_whitespace(text: str) -> str:
    """Collapse runs of spaces/tabs, normalize line endings, trim ends."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r'[ \t\f\v]+', ' ', text)
    text = re.sub(r' *\n *', '\n', text)
    return text.strip()


def sanitize_prompt(text: Optional[str]) -> str:
    """Full cleanup pipeline for prompt text."""
    if not text:
        return ""
    text = strip_html(text)
    text = remove_control_characters(text)
    return normalize_whitespace(text)


def detect_prompt_injection(text: str) -> Tuple[bool, Optional[str]]:
    """
    Detect potential prompt injection attempts.

    Returns:
        Tuple of (is_suspicious, matched_pattern)
    """
    for pattern in PROMPT_INJECTION_PATTERNS:
        if re.search(pattern, text, re.IGNORECASE):
            return (True, pattern)
    return (False, None)


# =============================================================================
# VALIDATION
# =============================================================================

@dataclass
class ValidationResult:
    """Result of prompt validation."""
    valid: bool
    sanitized: str
    reason: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "sanitized": self.sanitized,
            "reason": self.reason,
            "warnings": self.warnings,
        }


def validate_prompt(text: Optional[str], max_length: int = MAX_TEMPLATE_LENGTH) -> ValidationResult:
    sanitized = sanitize_prompt(text)
    if not sanitized:
        return ValidationResult(valid=False, sanitized="", reason="Prompt cannot be empty")
    if len(sanitized) > max_length:
        return ValidationResult(
            valid=False,
            sanitized=sanitized,
            reason=f"Prompt exceeds maximum length of {max_length} characters",
        )

    warnings = []
    suspicious, pattern = detect_prompt_injection(sanitized)
    if suspicious:
        logger.warning(f"Possible prompt injection detected (pattern: {pattern})")
        warnings.append("Prompt contains instruction-override phrasing")

    return ValidationResult(valid=True, sanitized=sanitized, warnings=warnings)
