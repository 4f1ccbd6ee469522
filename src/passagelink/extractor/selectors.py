"""
Element classification by tag and normalized class signature.

Every element is classified as ``(TAG, signature)`` where the signature is the
sorted, dot-joined list of its syntactically valid class tokens, or one of the
:class:`ClassSentinel` values. A :class:`SelectorKey` matches an element when
the element classifies to exactly that key, so selectors sharing a tag never
overlap.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from bs4.element import Tag

from ..config.config import ExtractionSettings

CLASS_TOKEN = re.compile(r"^[-_a-zA-Z][-_a-zA-Z0-9]*$")


class ClassSentinel(enum.Enum):
    """Class signatures of elements without a usable class list."""

    ABSENT = "absent"  # no class attribute
    EMPTY = "empty"  # class attribute present but blank
    INVALID = "invalid"  # only malformed tokens, or a non-string value


ClassSignature = Union[str, ClassSentinel]
NodePredicate = Callable[[Tag], bool]


def class_signature(element: Tag) -> ClassSignature:
    if not element.has_attr("class"):
        return ClassSentinel.ABSENT
    value = element.get("class")
    if isinstance(value, str):
        tokens = value.split()
    elif isinstance(value, list):
        tokens = [token for token in value if isinstance(token, str)]
        if len(tokens) != len(value):
            return ClassSentinel.INVALID
    else:
        return ClassSentinel.INVALID
    if not tokens:
        return ClassSentinel.EMPTY
    valid = sorted(token for token in tokens if CLASS_TOKEN.match(token))
    if not valid:
        return ClassSentinel.INVALID
    return ".".join(valid)


@dataclass(frozen=True)
class SelectorKey:
    """Tag plus class signature; ``ABSENT`` and ``EMPTY`` share one key."""

    tag: str
    classes: ClassSignature

    @classmethod
    def of(cls, element: Tag) -> SelectorKey:
        signature = class_signature(element)
        if signature is ClassSentinel.EMPTY:
            signature = ClassSentinel.ABSENT
        return cls(tag=element.name.upper(), classes=signature)

    @property
    def is_classed(self) -> bool:
        return not isinstance(self.classes, ClassSentinel)

    @property
    def class_tokens(self) -> List[str]:
        return self.classes.split(".") if isinstance(self.classes, str) else []

    def shares_class_with(self, other: SelectorKey) -> bool:
        mine = set(self.class_tokens)
        return any(token in mine for token in other.class_tokens)

    def render(self) -> str:
        """Readable selector text, e.g. ``p.lead`` or ``p:not([class])``."""
        tag = self.tag.lower()
        if isinstance(self.classes, str):
            return f"{tag}.{self.classes}"
        if self.classes is ClassSentinel.INVALID:
            return f"{tag}[class]"
        return f"{tag}:not([class])"

    def matcher(self, admit: Optional[NodePredicate] = None) -> NodePredicate:
        """Predicate accepting admitted elements that classify to this key."""

        def matches(element: Tag) -> bool:
            if admit is not None and not admit(element):
                return False
            return SelectorKey.of(element) == self

        return matches

    def __str__(self) -> str:
        return self.render()


def build_admission(settings: ExtractionSettings) -> NodePredicate:
    """Predicate for the tagging pass: every element except the ignore sets."""
    ignored_tags = frozenset(tag.upper() for tag in settings.ignored_tags)
    ignored_classes = frozenset(settings.ignored_classes)
    ignored_ids = frozenset(settings.ignored_ids)

    def admit(element: Tag) -> bool:
        if element.name.upper() in ignored_tags:
            return False
        if element.get("id") in ignored_ids:
            return False
        classes = element.get("class")
        if isinstance(classes, list) and any(c in ignored_classes for c in classes):
            return False
        return True

    return admit


def is_media_tag(element: Tag, settings: ExtractionSettings) -> bool:
    return element.name.upper() in settings.media_tags
