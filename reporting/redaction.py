"""
Reporting - Redaction.

============================================================
PURPOSE
============================================================
Pattern-based scrubbing of likely secrets before free text is
embedded in an exported document.

SECURITY NOTES:
1. Best-effort filter, NOT a security boundary
2. Regex based: obfuscated or unusual secrets pass through
3. Rules are data; extend DEFAULT_REDACTION_RULES (or pass your
   own tuple) instead of changing the export code

============================================================
"""

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence


@dataclass(frozen=True)
class RedactionRule:
    """One named substitution."""

    name: str
    pattern: Pattern
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


# ============================================================
# SENSITIVE DATA PATTERNS
# ============================================================

# Secret-indicating key names, followed by ':' or '=' and a value
_SECRET_KEY_NAMES = (
    r"api[_-]?key|apikey|api_secret|secret[_-]?key|password|passwd|pwd"
    r"|token|bearer|auth[_-]?token|access[_-]?token"
)

# Applied in order
DEFAULT_REDACTION_RULES = (
    RedactionRule(
        name="key_value_secret",
        pattern=re.compile(
            rf"({_SECRET_KEY_NAMES})['\"]?\s*[:=]\s*['\"]?[\w\-.]+['\"]?",
            re.IGNORECASE,
        ),
        replacement=r"\1=[REDACTED]",
    ),
    RedactionRule(
        name="aws_access_key",
        pattern=re.compile(r"AKIA[0-9A-Z]{16}"),
        replacement="[REDACTED_AWS_KEY]",
    ),
    RedactionRule(
        name="jwt",
        pattern=re.compile(r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"),
        replacement="[REDACTED_JWT]",
    ),
)


def redact_text(
    text: Optional[str],
    rules: Sequence[RedactionRule] = DEFAULT_REDACTION_RULES,
) -> Optional[str]:
    """
    Apply every rule to `text`, in order.

    None and empty strings are returned unchanged.
    """
    if not text:
        return text
    for rule in rules:
        text = rule.apply(text)
    return text
