"""Sub-label classification from genres and audio features."""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..domain.entities import AudioFeatures, ResolvedArtist

logger = logging.getLogger(__name__)

GenreMappings = Mapping[str, Iterable[str]]
# feature name -> (min, max); None means unbounded
AudioProfile = Mapping[str, Tuple[Optional[float], Optional[float]]]

# Declaration order breaks score ties.
DEFAULT_GENRE_MAPPINGS: Dict[str, List[str]] = {
    "deep": [
        "deep-house", "tech-house", "minimal-techno", "progressive-house",
        "ambient-techno", "dub-techno", "detroit-techno", "acid-house",
        "minimal", "deep-tech", "microhouse", "dub", "experimental",
    ],
    "tech": [
        "electronic", "techno", "house", "dance", "edm", "dubstep",
        "drum-and-bass", "electro", "trance", "breakbeat",
        "garage", "industrial", "synthwave", "electronica",
    ],
    "records": [
        "pop", "rock", "indie", "alternative", "punk", "metal",
        "folk", "singer-songwriter", "reggae", "world-music",
        "jazz", "blues", "soul", "r-n-b", "hip-hop", "rap",
    ],
}

DEFAULT_AUDIO_PROFILES: Dict[str, Dict[str, Tuple[Optional[float], Optional[float]]]] = {
    "deep": {
        "energy": (None, 0.6),
        "instrumentalness": (0.4, None),
        "acousticness": (None, 0.3),
        "valence": (None, 0.6),
        "tempo": (115, 125),
    },
    "tech": {
        "energy": (0.6, None),
        "instrumentalness": (0.3, None),
        "acousticness": (None, 0.4),
        "tempo": (120, None),
    },
    "records": {
        "speechiness": (0.1, None),
        "acousticness": (0.2, None),
    },
}

GENRE_WEIGHT = 0.6
AUDIO_PROFILE_BONUS = 0.4
EXPLICIT_BONUS = 0.1
SLOW_TEMPO_BONUS = 0.1
SLOW_TEMPO_BPM = 100


def normalize_genre(genre: str) -> str:
    """Lowercase, hyphen-joined form: ``"Deep House"`` -> ``"deep-house"``."""
    return re.sub(r"\s+", "-", genre.strip().lower())


@dataclass
class LabelClassification:
    """Winning sub-label with the score of every candidate label."""
    label: str
    confidence: float
    scores: Dict[str, float] = field(default_factory=dict)


class LabelClassifier:
    """Assign tracks and artists to one of the label's sub-labels."""

    def __init__(
        self,
        genre_mappings: Optional[GenreMappings] = None,
        audio_profiles: Optional[Mapping[str, AudioProfile]] = None,
        explicit_label: str = "records",
        slow_tempo_label: str = "deep",
    ):
        mappings = genre_mappings if genre_mappings is not None else DEFAULT_GENRE_MAPPINGS
        if not mappings:
            raise ValueError("At least one label genre mapping is required")

        self.genre_mappings: Dict[str, frozenset] = {
            label: frozenset(normalize_genre(g) for g in genres)
            for label, genres in mappings.items()
        }
        self.audio_profiles = dict(
            audio_profiles if audio_profiles is not None else DEFAULT_AUDIO_PROFILES
        )
        self.explicit_label = explicit_label
        self.slow_tempo_label = slow_tempo_label

    @property
    def labels(self) -> List[str]:
        return list(self.genre_mappings)

    def genre_scores(self, genres: Iterable[str]) -> Dict[str, float]:
        """Fraction of ``genres`` belonging to each label."""
        normalized = [normalize_genre(g) for g in genres if g and g.strip()]
        if not normalized:
            return {label: 0.0 for label in self.genre_mappings}
        return {
            label: sum(1 for g in normalized if g in label_genres) / len(normalized)
            for label, label_genres in self.genre_mappings.items()
        }

    def matches_profile(self, features: AudioFeatures, label: str) -> bool:
        """Check every bounded feature of the label's profile (bounds inclusive)."""
        profile = self.audio_profiles.get(label)
        if not profile:
            return False
        for feature, (low, high) in profile.items():
            value = getattr(features, feature)
            if low is not None and value < low:
                return False
            if high is not None and value > high:
                return False
        return True

    def classify_genres(self, genres: Iterable[str]) -> Optional[LabelClassification]:
        """Classify on genres alone; ``None`` when no genre matches any label."""
        scores = self.genre_scores(genres)
        classification = self._pick(scores)
        return classification if classification.confidence > 0 else None

    def classify_track(
        self,
        features: AudioFeatures,
        genres: Iterable[str] = (),
        explicit: bool = False,
    ) -> LabelClassification:
        """Combine genre matches and audio profiles into a sub-label."""
        scores = {
            label: score * GENRE_WEIGHT
            + (AUDIO_PROFILE_BONUS if self.matches_profile(features, label) else 0.0)
            for label, score in self.genre_scores(genres).items()
        }

        if explicit and self.explicit_label in scores:
            scores[self.explicit_label] += EXPLICIT_BONUS
        if features.tempo < SLOW_TEMPO_BPM and self.slow_tempo_label in scores:
            scores[self.slow_tempo_label] += SLOW_TEMPO_BONUS

        classification = self._pick(scores)
        logger.debug(f"Classified track as {classification.label} ({classification.confidence:.2f})")
        return classification

    def classify_artist(self, resolved: ResolvedArtist) -> Optional[LabelClassification]:
        """Classify a reconciled artist by its catalog genres."""
        if not resolved.found or not resolved.genres:
            return None
        return self.classify_genres(sorted(resolved.genres))

    @staticmethod
    def _pick(scores: Dict[str, float]) -> LabelClassification:
        # max() keeps the first of equal scores
        label = max(scores, key=lambda name: scores[name])
        return LabelClassification(label=label, confidence=scores[label], scores=scores)
