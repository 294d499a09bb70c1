"""Inbound chat input validation and sanitization."""

import logging
import re
from typing import List, Tuple

from bakeryhub.infra.config import config
from bakeryhub.models.context import Role

logger = logging.getLogger("bakeryhub.infra.validation")

_INJECTION_PATTERNS = [
    ("meta_instruction", [
        r"ignore\s+(previous|all|the)\s+(instructions?|rules?|prompts?)",
        r"forget\s+(previous|all|the)\s+(instructions?|rules?|prompts?)",
        r"disregard\s+(previous|all|the)\s+(instructions?|rules?|prompts?)",
        r"you\s+are\s+now\s+(a|an)\s+",
        r"pretend\s+to\s+be",
    ]),
    ("role_escalation", [
        r"you\s+are\s+(admin|administrator|root|superuser)",
        r"(i\s+am|i'm)\s+(an?\s+)?(admin|administrator|tenant\s+admin|owner)",
        r"(grant|give)\s+me\s+(admin|administrator|owner)\s+(access|privileges?|role)",
    ]),
    ("disclosure_attempt", [
        r"show\s+(me\s+)?(your\s+)?(system\s+)?(prompt|instructions?)",
        r"reveal\s+(your\s+)?(system\s+)?(prompt|instructions?)",
    ]),
    ("cross_tenant_attempt", [
        r"(another|other|different)\s+(tenant|bakery|business)'?s?\s+",
        r"switch\s+to\s+(tenant|bakery|account)\s+",
        r"tenant[_\s]?id\s*[=:]",
    ]),
]


def detect_prompt_injection(content: str) -> List[str]:
    """
    Detect prompt injection patterns in content.

    Returns:
        List of detected pattern types (empty if none)
    """
    if not content:
        return []

    content_lower = content.lower()
    detected = []
    for pattern_type, patterns in _INJECTION_PATTERNS:
        if any(re.search(pattern, content_lower) for pattern in patterns):
            detected.append(pattern_type)
    return detected


def sanitize_message_content(content: str) -> str:
    """
    Strip null bytes and control characters from a user message.

    Detected injection patterns are logged but never block the message; the
    tool gate enforces authorization regardless of what the model is told.
    """
    if not content:
        return ""

    injection_patterns = detect_prompt_injection(content)
    if injection_patterns:
        logger.warning(
            "Prompt injection patterns detected",
            extra={"patterns": injection_patterns, "content_length": len(content)},
        )

    # Remove control characters except newlines and tabs
    return re.sub(r'[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]', '', content)


def validate_role(role: str) -> Role:
    """
    Raises:
        ValueError: If role is not part of the role vocabulary
    """
    try:
        return Role(role)
    except ValueError:
        raise ValueError(f"Invalid role. Must be one of: {', '.join(Role.values())}")


def validate_chat_input(message: str, role: str, max_length: int = None) -> Tuple[str, Role]:
    """
    Validate an inbound chat message and claimed role.

    Args:
        message: Raw user message
        role: Role claimed by the caller
        max_length: Maximum message length (defaults to MAX_MESSAGE_LENGTH)

    Returns:
        Tuple of (sanitized message, role)

    Raises:
        ValueError: If validation fails
    """
    max_length = max_length or config.MAX_MESSAGE_LENGTH

    if message is None or not message.strip():
        raise ValueError("Message cannot be empty")

    if len(message) > max_length:
        raise ValueError(f"Message too long. Maximum length: {max_length} characters")

    cleaned = sanitize_message_content(message).strip()
    if not cleaned:
        raise ValueError("Message cannot be empty")

    return cleaned, validate_role(role)
