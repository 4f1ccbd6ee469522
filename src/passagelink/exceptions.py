"""
Exception hierarchy for passagelink.

Extraction and matching report data-shape conditions (too little content, no
eligible selectors, an unusable embedding provider) as diagnostics rather than
raising; the classes for those conditions still exist so the diagnostic carries
a stable kind. Highlighting failures are raised per snippet and aggregated by
the caller.
"""

from __future__ import annotations


class PassageLinkError(Exception):
    """Base exception for all passagelink errors."""

    #: Stable identifier used as ``event_type`` in log records and diagnostics.
    kind: str = "passagelink_error"


class InsufficientContent(PassageLinkError):
    """Readable length or target count fell below the configured minimum."""

    kind = "insufficient_content"


class NoEligibleSelectors(PassageLinkError):
    """Every selector density lay outside the eligible band."""

    kind = "no_eligible_selectors"


class EmbeddingUnavailable(PassageLinkError):
    """The embedding provider could not be loaded or failed to embed."""

    kind = "embedding_unavailable"


class EmbeddingDimensionMismatch(PassageLinkError):
    """Anchor and target embeddings do not share a dimension."""

    kind = "embedding_dimension_mismatch"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Embedding dimension mismatch: {expected} != {actual}")
        self.expected = expected
        self.actual = actual


class HighlightError(PassageLinkError):
    """Base exception for snippet location and marking failures."""

    kind = "highlight_error"


class SnippetTooShort(HighlightError):
    """Raised when a snippet is shorter than the minimum search window."""

    kind = "snippet_too_short"


class SnippetNotFound(HighlightError):
    """Raised when a snippet cannot be located at any search length."""

    kind = "snippet_not_found"


class TextNodeRangeNotFound(HighlightError):
    """Raised when an offset falls outside every text node range."""

    kind = "text_node_range_not_found"


class TargetNotFound(HighlightError):
    """Raised when no element carries the requested target id."""

    kind = "target_not_found"
