from __future__ import annotations

import re

from repo_to_text.config import BINARY_PLACEHOLDER

# (pattern, replacement): prefix and suffix groups are kept, the payload between
# them is replaced. Non-greedy so each occurrence is redacted on its own.
BINARY_LITERAL_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r'(DATA = b""")[^"]*?(""")', re.DOTALL), rf"\g<1>{BINARY_PLACEHOLDER}\g<2>"),
    (re.compile(r"(b85decode\().*?(\))", re.DOTALL), rf'\g<1>"{BINARY_PLACEHOLDER}"\g<2>'),
    (re.compile(r"(base64\.[^(]*decode\().*?(\))", re.DOTALL), rf'\g<1>"{BINARY_PLACEHOLDER}"\g<2>'),
)


def decode_lossy(data: bytes) -> str:
    """Decode file bytes as UTF-8, replacing invalid sequences with U+FFFD."""
    return data.decode("utf-8", errors="replace")


def redact(text: str) -> str:
    """Replace embedded binary literals with a fixed placeholder.

    Three rules run in sequence over the whole text: triple-quoted `DATA = b...`
    byte literals, then `b85decode(...)` calls, then `base64.*decode(...)` calls. The
    surrounding syntax is preserved, only the payload is dropped. Running it on
    already redacted text is a no-op.

    Args:
        text (str): the decoded file content

    Returns:
        str: the content with binary payloads removed
    """
    for pattern, replacement in BINARY_LITERAL_RULES:
        text = pattern.sub(replacement, text)
    return text
