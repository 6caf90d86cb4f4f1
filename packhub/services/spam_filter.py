"""Content heuristics flagging likely spam in chat messages and comments.

Every check is a pure function of the text, so the filter is safe to share
across concurrent requests.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from packhub.core.config import SpamSettings

REASON_REPEATED_CHARACTERS = "Too many repeated characters"
REASON_ALL_CAPS = "Message is all caps"
REASON_SPECIAL_CHARACTERS = "Too many special characters"
REASON_URLS = "Too many URLs"

_URL_RE = re.compile(r"https?://[^\s]+")
_PLAIN_CHARS_RE = re.compile(r"[a-zA-Z0-9\s]")
_LETTER_RE = re.compile(r"[A-Z]")


@dataclass(frozen=True)
class SpamVerdict:
    """Outcome of a spam check."""

    is_spam: bool
    reason: str | None = None


def has_repeated_characters(text: str, threshold: int = 5) -> bool:
    """True when ``threshold`` identical characters appear in a row."""
    return re.search(rf"(.)\1{{{threshold - 1},}}", text) is not None


def is_all_caps(text: str, min_length: int = 5) -> bool:
    """True for shouting; shorter strings pass as acronyms."""
    if len(text) < min_length:
        return False
    return text == text.upper() and _LETTER_RE.search(text) is not None


def has_excessive_special_chars(text: str, threshold: float = 0.3) -> bool:
    """True when symbols make up more than ``threshold`` of the text."""
    if not text:
        return False
    special = _PLAIN_CHARS_RE.sub("", text)
    return len(special) / len(text) > threshold


def has_excessive_urls(text: str, threshold: int = 2) -> bool:
    """True when the text links ``threshold`` URLs or more."""
    return len(_URL_RE.findall(text)) >= threshold


class SpamFilter:
    """Applies the heuristics in priority order; the first hit wins.

    Args:
        repeated_char_threshold: Run length of identical characters.
        caps_min_length: Minimum length before all-caps counts.
        special_char_ratio: Maximum share of special characters.
        url_threshold: URL count that counts as spam.

    Raises:
        ValueError: If a threshold is out of range.
    """

    def __init__(
        self,
        *,
        repeated_char_threshold: int = 5,
        caps_min_length: int = 5,
        special_char_ratio: float = 0.3,
        url_threshold: int = 2,
    ) -> None:
        if repeated_char_threshold < 2:
            raise ValueError("repeated_char_threshold must be >= 2")
        if caps_min_length < 1:
            raise ValueError("caps_min_length must be >= 1")
        if not 0 < special_char_ratio <= 1:
            raise ValueError("special_char_ratio must be in (0, 1]")
        if url_threshold < 1:
            raise ValueError("url_threshold must be >= 1")

        self.repeated_char_threshold = repeated_char_threshold
        self.caps_min_length = caps_min_length
        self.special_char_ratio = special_char_ratio
        self.url_threshold = url_threshold

    @classmethod
    def from_settings(cls, cfg: SpamSettings) -> "SpamFilter":
        return cls(
            repeated_char_threshold=cfg.repeated_char_threshold,
            caps_min_length=cfg.caps_min_length,
            special_char_ratio=cfg.special_char_ratio,
            url_threshold=cfg.url_threshold,
        )

    def classify(self, text: str) -> SpamVerdict:
        if has_repeated_characters(text, self.repeated_char_threshold):
            return SpamVerdict(is_spam=True, reason=REASON_REPEATED_CHARACTERS)
        if is_all_caps(text, self.caps_min_length):
            return SpamVerdict(is_spam=True, reason=REASON_ALL_CAPS)
        if has_excessive_special_chars(text, self.special_char_ratio):
            return SpamVerdict(is_spam=True, reason=REASON_SPECIAL_CHARACTERS)
        if has_excessive_urls(text, self.url_threshold):
            return SpamVerdict(is_spam=True, reason=REASON_URLS)
        return SpamVerdict(is_spam=False)


_default_filter = SpamFilter()


def classify_spam(text: str) -> SpamVerdict:
    """Classify ``text`` with the default thresholds."""
    return _default_filter.classify(text)
