"""
Configuration for pagequote extraction and selection.

All options have sensible defaults. Create a config only
if you need to customize behavior.
"""

from dataclasses import dataclass, field
from typing import Literal

from pagequote.exceptions import ConfigurationError

OVERLAP_POLICIES = ("remainder", "skip")
GRANULARITIES = ("paragraph", "sentence")


@dataclass
class SegmenterConfig:
    """
    Configuration for sentence segmentation.

    The minimum length discards OCR noise such as stray page numbers
    and single characters. It is applied before and after cleaning.
    """

    min_sentence_length: int = 5

    def __post_init__(self):
        """Validate configuration."""
        if self.min_sentence_length < 1:
            raise ConfigurationError(
                f"min_sentence_length must be >= 1, got {self.min_sentence_length}"
            )


@dataclass
class ExtractionConfig:
    """
    Configuration for turning structured OCR results into candidates.

    Overlap between a paragraph and an underlined sentence is resolved
    by `overlap_policy`:
    - "remainder" (default): remove the underlined text from the paragraph
      and keep what is left if it is at least `min_remainder_length` chars
    - "skip": drop any paragraph that overlaps an underlined sentence

    Example:
        >>> config = ExtractionConfig(overlap_policy="skip", granularity="sentence")
        >>> normalizer = StructuredNormalizer(config)
    """

    overlap_policy: Literal["remainder", "skip"] = "remainder"
    granularity: Literal["paragraph", "sentence"] = "paragraph"
    min_remainder_length: int = 10

    # Underlined text is the reader's own emphasis, so it starts selected
    preselect_underlined: bool = True

    # 1 = one image at a time
    max_workers: int = 1

    def __post_init__(self):
        """Validate configuration."""
        if self.overlap_policy not in OVERLAP_POLICIES:
            raise ConfigurationError(
                f"overlap_policy must be one of {OVERLAP_POLICIES}, got {self.overlap_policy!r}"
            )
        if self.granularity not in GRANULARITIES:
            raise ConfigurationError(
                f"granularity must be one of {GRANULARITIES}, got {self.granularity!r}"
            )
        if self.min_remainder_length < 0:
            raise ConfigurationError(
                f"min_remainder_length must be >= 0, got {self.min_remainder_length}"
            )
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers}")


@dataclass
class SelectionConfig:
    """Configuration for manual region selection."""

    # Display pixels. OCR on a near-empty crop is slow and finds nothing.
    min_selection_size: float = 20.0

    def __post_init__(self):
        """Validate configuration."""
        if self.min_selection_size < 0:
            raise ConfigurationError(
                f"min_selection_size must be >= 0, got {self.min_selection_size}"
            )


@dataclass
class CaptureConfig:
    """
    Configuration for a capture session.

    Example:
        >>> config = CaptureConfig(
        ...     extraction=ExtractionConfig(granularity="sentence", max_workers=2)
        ... )
        >>> session = CaptureSession(recognizer, config=config)
    """

    segmenter: SegmenterConfig = field(default_factory=SegmenterConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
