"""Parse free-form chat sentences into structured commands."""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..errors import ParseError
from ..models import ActionType, Command

LOGGER = logging.getLogger(__name__)

_FLAGS = re.IGNORECASE | re.DOTALL

_CLICK = re.compile(r"^(?:click|press)\s+(?:on\s+)?(?:the\s+)?(?P<target>.+)$", _FLAGS)
_TYPE_QUOTED = re.compile(
    r"^(?:type|enter|input)\s+(?P<q1>[\"'])(?P<value>.+?)(?P=q1)"
    r"\s+(?:in|into|on)\s+(?:the\s+)?(?P<q2>[\"']?)(?P<target>.+?)(?P=q2)$",
    _FLAGS,
)
_TYPE_VERB = re.compile(r"^(?:type|enter|input)\s+(?P<rest>.+)$", _FLAGS)
_TYPE_SPLIT = re.compile(r"\s+(?:in|into|on)\s+", re.IGNORECASE)
_SELECT_QUOTED = re.compile(
    r"^(?:select|choose)\s+(?P<q1>[\"'])(?P<value>.+?)(?P=q1)"
    r"\s+(?:from|in)\s+(?:the\s+)?(?P<q2>[\"']?)(?P<target>.+?)(?P=q2)$",
    _FLAGS,
)
_SELECT_VERB = re.compile(r"^(?:select|choose)\s+(?P<rest>.+)$", _FLAGS)
_SELECT_SPLIT = re.compile(r"\s+(?:from|in)\s+", re.IGNORECASE)
_NAVIGATE = re.compile(r"^(?:navigate\s+to|go\s+to)\s+(?P<url>\S+)$", _FLAGS)
_WAIT = re.compile(
    r"^(?:wait|pause)(?:\s+for)?\s+(?P<amount>\d+(?:\.\d+)?)\s*"
    r"(?P<unit>milliseconds?|ms|seconds?|secs?|s)?$",
    _FLAGS,
)
_LEADING_ARTICLE = re.compile(r"^the\s+", re.IGNORECASE)


class ChatCommandParser:
    """Recognise the small sentence grammar accepted by the chat endpoint.

    Quoted variants are tried before the whitespace-split variants, since
    quotes let values and targets contain the preposition words themselves.
    Verbs are case-insensitive; values and targets keep their case.
    """

    def parse(self, sentence: str) -> Command:
        raw = sentence.strip()
        text = " ".join(raw.split())
        if not text:
            raise ParseError(sentence)
        command = (
            self._parse_click(raw)
            or self._parse_field(
                raw, text, ActionType.TYPE, _TYPE_QUOTED, _TYPE_VERB, _TYPE_SPLIT
            )
            or self._parse_field(
                raw, text, ActionType.SELECT, _SELECT_QUOTED, _SELECT_VERB, _SELECT_SPLIT
            )
            or self._parse_navigate(text)
            or self._parse_wait(text)
        )
        if command is None:
            raise ParseError(sentence)
        LOGGER.debug("Parsed chat command %r into %s", sentence, command)
        return command

    @staticmethod
    def _parse_click(raw: str) -> Optional[Command]:
        match = _CLICK.match(raw)
        if not match:
            return None
        target = _unquote(match.group("target"))
        if not target:
            return None
        return Command(action=ActionType.CLICK.value, target=target)

    @staticmethod
    def _parse_field(
        raw: str,
        text: str,
        action: ActionType,
        quoted: re.Pattern[str],
        verb: re.Pattern[str],
        split: re.Pattern[str],
    ) -> Optional[Command]:
        match = quoted.match(raw)
        if match:
            target = match.group("target").strip()
            if not match.group("q2"):
                target = " ".join(target.split())
            return Command(action=action.value, value=match.group("value"), target=target)
        match = verb.match(text)
        if not match:
            return None
        parts = split.split(match.group("rest"), maxsplit=1)
        if len(parts) != 2:
            raise ParseError(text, f"{action.value} command needs a target")
        value, target = (_unquote(part) for part in parts)
        target = _LEADING_ARTICLE.sub("", target)
        if not value or not target:
            raise ParseError(text, f"{action.value} command needs a value and a target")
        return Command(action=action.value, value=value, target=target)

    @staticmethod
    def _parse_navigate(text: str) -> Optional[Command]:
        match = _NAVIGATE.match(text)
        if not match:
            return None
        url = match.group("url")
        if "://" not in url:
            url = f"https://{url}"
        return Command(action=ActionType.NAVIGATE.value, value=url)

    @staticmethod
    def _parse_wait(text: str) -> Optional[Command]:
        match = _WAIT.match(text)
        if not match:
            return None
        amount = float(match.group("amount"))
        unit = (match.group("unit") or "s").lower()
        if unit in {"ms", "millisecond", "milliseconds"}:
            amount /= 1000
        return Command(action=ActionType.WAIT.value, value=f"{amount:g}")


def _unquote(text: str) -> str:
    """Strip one pair of quotes, keeping their content verbatim; collapse whitespace otherwise."""

    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1].strip()
    return " ".join(text.split())
