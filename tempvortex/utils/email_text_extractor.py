"""
Plain-text views of message content.

Used by the OTP extractor: scanning rendered text instead of raw markup
keeps tag names and attribute values out of the candidate tokens.
"""

import re
import unicodedata
from html.parser import HTMLParser
from typing import Optional

import structlog

from tempvortex.models.mailbox import Message

logger = structlog.get_logger(__name__)


class HTMLTextExtractor(HTMLParser):
    """
    Strip HTML tags while keeping readable content.

    Block-level tags become newlines; script/style content is dropped.

    Example:
        >>> extractor = HTMLTextExtractor()
        >>> extractor.feed('<p>Your code is <b>A1B2C9</b></p>')
        >>> extractor.get_text()
        'Your code is A1B2C9'
    """

    BLOCK_TAGS = {
        'p', 'div', 'br', 'tr', 'td', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
        'li', 'blockquote', 'pre', 'hr', 'table',
    }
    SKIP_TAGS = {'script', 'style', 'head', 'title'}

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.text_parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list) -> None:
        tag = tag.lower()
        if tag in self.SKIP_TAGS:
            self._skip_depth += 1
        elif tag in self.BLOCK_TAGS:
            self.text_parts.append('\n')

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag in self.SKIP_TAGS and self._skip_depth:
            self._skip_depth -= 1
        elif tag in self.BLOCK_TAGS:
            self.text_parts.append('\n')

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        self.text_parts.append(data)

    def get_text(self) -> str:
        text = ''.join(self.text_parts)
        text = re.sub(r'[ \t\r\f\v]+', ' ', text)
        text = re.sub(r' ?\n\s*', '\n', text)
        return text.strip()


def html_to_text(html: str) -> str:
    """Render HTML to plain text; falls back to a regex tag strip."""
    try:
        parser = HTMLTextExtractor()
        parser.feed(html)
        parser.close()
        return parser.get_text()
    except Exception as e:
        logger.warning("html_parsing_failed", error=str(e), falling_back_to_plain=True)
        return re.sub(r'<[^>]+>', ' ', html)


def message_text(message: Message, max_chars: Optional[int] = None) -> Optional[str]:
    """
    Best plain-text view of a hydrated message.

    Prefers the rendered HTML (some providers put HTML in the text body as
    well), then the plain body. Returns None for un-hydrated messages.

    Args:
        message: Hydrated message
        max_chars: Bound on the raw content considered, applied before rendering
    """
    if message.html:
        text = html_to_text(message.html[:max_chars])
    elif message.body:
        text = message.body[:max_chars]
    else:
        return None
    return unicodedata.normalize('NFKC', text)
