"""
Pattern Catalog - The fixed set of chants a session draws from.

A catalog is an ordered, read-only collection of Patterns plus the video
sources for the success and failure cues. Provides methods for loading/saving
JSON files and for picking a pattern uniformly at random.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, List
import json
import random

from .pattern import Pattern


SUCCESS_CUE = "success"
FAILURE_CUE = "failure"

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "default_catalog.json"


@dataclass
class PatternCatalog:
    """
    Ordered collection of puzzle patterns.

    Attributes:
        name: Display name for the catalog
        patterns: Patterns in catalog order
        videos: Cue id -> video source (file path, relative to the catalog file)
        version: Catalog format version
        source_path: File the catalog was loaded from (not serialized)
    """
    name: str
    patterns: List[Pattern] = field(default_factory=list)
    videos: Dict[str, str] = field(default_factory=dict)
    version: str = "1.0"
    source_path: Optional[Path] = field(default=None, compare=False)

    def __len__(self) -> int:
        return len(self.patterns)

    def pick(self, rng: Optional[random.Random] = None) -> Pattern:
        """
        Select one pattern uniformly at random.

        Raises:
            ValueError: If the catalog is empty
        """
        if not self.patterns:
            raise ValueError("Cannot pick from an empty catalog")
        return (rng or random).choice(self.patterns)

    def resolve_video(self, cue_id: str) -> Optional[Path]:
        """Resolve a cue id to a video path, relative to the catalog file."""
        source = self.videos.get(cue_id)
        if not source:
            return None
        path = Path(source).expanduser()
        if not path.is_absolute() and self.source_path is not None:
            path = self.source_path.parent / path
        return path

    def validate(self) -> tuple[bool, str]:
        """
        Validate catalog configuration.

        Returns:
            (is_valid, error_message)
        """
        if not self.name or not self.name.strip():
            return False, "Catalog name cannot be empty"

        if not self.patterns:
            return False, "Catalog must contain at least one pattern"

        for i, pattern in enumerate(self.patterns):
            is_valid, msg = pattern.validate()
            if not is_valid:
                label = f" ('{pattern.name}')" if pattern.name else ""
                return False, f"Pattern {i}{label}: {msg}"

        return True, ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize catalog to JSON-compatible dict."""
        return {
            "name": self.name,
            "version": self.version,
            "videos": dict(self.videos),
            "patterns": [pattern.to_dict() for pattern in self.patterns],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PatternCatalog:
        """Deserialize from dict."""
        return cls(
            name=data["name"],
            version=data.get("version", "1.0"),
            videos=dict(data.get("videos", {})),
            patterns=[Pattern.from_dict(entry) for entry in data.get("patterns", [])],
        )

    def save(self, path: Path) -> None:
        """
        Save catalog to JSON file.

        Raises:
            ValueError: If catalog validation fails
            IOError: If file cannot be written
        """
        is_valid, msg = self.validate()
        if not is_valid:
            raise ValueError(f"Cannot save invalid catalog: {msg}")

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path: Path) -> PatternCatalog:
        """
        Load catalog from JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file contains invalid JSON
            ValueError: If catalog validation fails
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Catalog file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        catalog = cls.from_dict(data)
        catalog.source_path = path

        is_valid, msg = catalog.validate()
        if not is_valid:
            raise ValueError(f"Invalid catalog in {path}: {msg}")

        return catalog


def load_default_catalog() -> PatternCatalog:
    """Load the catalog bundled with the package."""
    return PatternCatalog.load(DEFAULT_CATALOG_PATH)
