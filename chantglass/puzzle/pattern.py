"""
Pattern Data Models - A chant split into ordered segments.

A Pattern represents one complete puzzle:
- Canonical segment order (sequence numbers 1..N)
- Video cue window replayed in a loop on success

Patterns are immutable once built; sessions copy segments out of them but
never mutate them.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Any, Tuple


@dataclass(frozen=True)
class Segment:
    """
    One unit of chant text with a fixed position in its pattern.

    Attributes:
        sequence_number: 1-based canonical position, unique within a pattern
        text: Display text for the segment
    """
    sequence_number: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {"number": self.sequence_number, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Segment:
        """Deserialize from dict."""
        return cls(sequence_number=int(data["number"]), text=str(data["text"]))


@dataclass(frozen=True)
class CueWindow:
    """
    Playback window ``[start_offset, end_offset)`` in seconds.

    The success cue starts at ``start_offset`` and is looped back there once
    playback reaches ``end_offset``.
    """
    start_offset: float
    end_offset: float

    def validate(self) -> tuple[bool, str]:
        """
        Validate window bounds.

        Returns:
            (is_valid, error_message)
        """
        if self.start_offset < 0:
            return False, f"start_offset must be non-negative, got {self.start_offset}"
        if self.end_offset <= self.start_offset:
            return False, (
                f"end_offset ({self.end_offset}) must be greater than "
                f"start_offset ({self.start_offset})"
            )
        return True, ""

    @property
    def duration(self) -> float:
        return self.end_offset - self.start_offset

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {"start": self.start_offset, "end": self.end_offset}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CueWindow:
        """Deserialize from dict."""
        return cls(start_offset=float(data["start"]), end_offset=float(data["end"]))


@dataclass(frozen=True)
class Pattern:
    """
    Complete puzzle definition.

    Attributes:
        segments: Segments in canonical order
        cue: Video window played (and looped) on success
        name: Display name (optional, informational only)
    """
    segments: Tuple[Segment, ...]
    cue: CueWindow
    name: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        """Freeze a list of segments into a tuple."""
        if not isinstance(self.segments, tuple):
            object.__setattr__(self, "segments", tuple(self.segments))

    def __len__(self) -> int:
        return len(self.segments)

    def validate(self) -> tuple[bool, str]:
        """
        Validate pattern configuration.

        Sequence numbers must be exactly 1..N in canonical order.

        Returns:
            (is_valid, error_message)
        """
        if not self.segments:
            return False, "Pattern must contain at least one segment"

        numbers = [segment.sequence_number for segment in self.segments]
        expected = list(range(1, len(self.segments) + 1))
        if numbers != expected:
            return False, f"Segment numbers must be exactly {expected}, got {numbers}"

        for segment in self.segments:
            if not segment.text or not segment.text.strip():
                return False, f"Segment {segment.sequence_number} text cannot be empty"

        is_valid, msg = self.cue.validate()
        if not is_valid:
            return False, f"cue: {msg}"

        return True, ""

    def segment_at(self, position: int) -> Segment:
        """Return the segment at 0-based canonical ``position``."""
        return self.segments[position]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        data = {
            "segments": [segment.to_dict() for segment in self.segments],
            "cue": self.cue.to_dict(),
        }
        if self.name:
            data["name"] = self.name
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Pattern:
        """Deserialize from dict.

        Segments are ordered by their number so files may list them in any order.
        """
        segments = sorted(
            (Segment.from_dict(entry) for entry in data["segments"]),
            key=lambda segment: segment.sequence_number,
        )
        return cls(
            segments=tuple(segments),
            cue=CueWindow.from_dict(data["cue"]),
            name=data.get("name", ""),
            metadata=data.get("metadata", {}),
        )
