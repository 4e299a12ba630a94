"""Generate ordered candidate selectors from a human-language target."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..models import ActionType

TEXT_BEARING_KINDS = (
    "a",
    "button",
    "input",
    "select",
    "textarea",
    "label",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "p",
    "span",
    "div",
)

_KINDS = ":is({})".format(", ".join(TEXT_BEARING_KINDS))

_RAW_PREFIXES = (
    "#",
    ".",
    "[",
    "/",
    "(",
    "css=",
    "xpath=",
    "text=",
    "id=",
    "role=",
    "data-testid=",
    "internal:",
)
_TAG_SELECTOR = re.compile(r"^[a-z][a-z0-9-]*(\[|::?[a-z]|#[\w-]|\.[a-zA-Z_-])")

FIELD_ACTIONS = frozenset({ActionType.TYPE, ActionType.SELECT})


@dataclass(frozen=True)
class SelectorCandidate:
    """One selector expression to try, in list order."""

    expression: str
    strategy: str
    follow_label: bool = False


def looks_like_selector(target: str, options: Optional[Mapping[str, Any]] = None) -> bool:
    """Return True when *target* is already a selector rather than prose.

    ``options["raw"]`` overrides the heuristic in either direction.
    """

    if options and "raw" in options:
        return bool(options["raw"])
    text = target.strip()
    if not text:
        return False
    if text.startswith(_RAW_PREFIXES) or ">>" in text:
        return True
    return bool(_TAG_SELECTOR.match(text))


def quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


class SelectorStrategyGenerator:
    """Turn a target phrase into a deterministic, most-specific-first list."""

    def for_target(
        self,
        text: str,
        action: Optional[ActionType] = None,
    ) -> list[SelectorCandidate]:
        phrase = text.strip()
        if not phrase:
            return []
        candidates: list[SelectorCandidate] = []
        seen: set[str] = set()

        def add(expression: str, strategy: str, follow_label: bool = False) -> None:
            if expression in seen:
                return
            seen.add(expression)
            candidates.append(SelectorCandidate(expression, strategy, follow_label))

        add(f"{_KINDS}:text-is({quote(phrase)})", "exact")
        add(f"{_KINDS}:text-is({quote(phrase.lower())})", "exact-lower")
        add(f"{_KINDS}:text-is({quote(phrase.upper())})", "exact-upper")
        add(f"{_KINDS}:text-is({quote(phrase[0].upper() + phrase[1:])})", "exact-capitalized")
        add(f"{_KINDS}:text({quote(phrase)})", "contains")
        add(f"[aria-label*={quote(phrase)}]", "aria-label")
        add(f"a:has-text({quote(phrase)})", "link-text")
        add(f"button:has-text({quote(phrase)})", "button-text")
        add(f"[role=button]:has-text({quote(phrase)})", "role-button-text")
        add(f"[role=link]:has-text({quote(phrase)})", "role-link-text")
        add(f":text({quote(phrase)}) >> visible=true", "visible-text")
        if action in FIELD_ACTIONS:
            add(f"label:has-text({quote(phrase)})", "label", follow_label=True)
            add(f"[placeholder*={quote(phrase)} i]", "placeholder")
            add(f"[name*={quote(phrase)} i]", "name-attribute")
        return candidates

    def for_selector(self, expression: str) -> list[SelectorCandidate]:
        return [SelectorCandidate(expression.strip(), "raw")]
