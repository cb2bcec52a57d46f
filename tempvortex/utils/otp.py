"""
One-time passcode detection.

Best-effort heuristics only: this can miss real codes and can match things
that are not codes. It does not implement any formal OTP standard.
"""

import re
from typing import Optional, Protocol

from tempvortex.models.mailbox import Message
from tempvortex.utils.email_text_extractor import message_text

MAX_SCAN_CHARS = 2000
MAX_KEYWORD_GAP = 50

KEYWORD_PATTERN = re.compile(
    r'code|otp|verify|verification|password|pin|access|token|key',
    re.IGNORECASE,
)
# Case-sensitive on purpose: only uppercase/digit tokens are candidates
TOKEN_PATTERN = re.compile(r'\b[A-Z0-9]{4,8}\b')
FALLBACK_PATTERN = re.compile(r'\b(\d{6})\b')


class OtpExtractor(Protocol):
    """Strategy for pulling a passcode out of message text."""

    def extract(self, text: str) -> Optional[str]:
        ...


def looks_like_year(token: str) -> bool:
    """Bare 4-digit numbers from 1950 to 2049."""
    return len(token) == 4 and token.isdigit() and 1950 <= int(token) <= 2049


class KeywordOtpExtractor:
    """
    Keyword-anchored token search with a 6-digit fallback.

    Policy:
    1. Only the first ``max_chars`` characters are scanned.
    2. A 4-8 char uppercase alphanumeric token starting within
       ``max_gap`` characters after a keyword wins.
    3. Tokens that look like calendar years are skipped.
    4. Otherwise the first standalone 6-digit number, if any.
    """

    def __init__(self, max_chars: int = MAX_SCAN_CHARS, max_gap: int = MAX_KEYWORD_GAP) -> None:
        self.max_chars = max_chars
        self.max_gap = max_gap

    def extract(self, text: str) -> Optional[str]:
        if not text:
            return None
        content = text[: self.max_chars]

        for keyword in KEYWORD_PATTERN.finditer(content):
            code = self._token_after(content, keyword.end())
            if code:
                return code

        fallback = FALLBACK_PATTERN.search(content)
        return fallback.group(1) if fallback else None

    def _token_after(self, content: str, start: int) -> Optional[str]:
        # Searching from ``start`` keeps \b aware of the keyword's last char
        for match in TOKEN_PATTERN.finditer(content, start):
            if match.start() - start > self.max_gap:
                break
            if not looks_like_year(match.group()):
                return match.group()
        return None


default_extractor = KeywordOtpExtractor()


def extract_otp(text: str, extractor: Optional[OtpExtractor] = None) -> Optional[str]:
    """Extract a passcode from raw text."""
    return (extractor or default_extractor).extract(text)


def extract_otp_from_message(message: Message, extractor: Optional[OtpExtractor] = None) -> Optional[str]:
    """
    Extract a passcode from a hydrated message; None if not hydrated.

    The scan window bounds the raw content, so rendering never sees more
    than the first ``max_chars`` characters of the HTML or body.
    """
    extractor = extractor or default_extractor
    text = message_text(message, getattr(extractor, "max_chars", MAX_SCAN_CHARS))
    if text is None:
        return None
    return extract_otp(text, extractor)
