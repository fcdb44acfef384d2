"""Tests for sub-label classification."""

import pytest

from label_catalog.core.classifier import (
    LabelClassifier,
    normalize_genre,
)
from label_catalog.domain.entities import (
    ArtistCandidate,
    AudioFeatures,
    MatchStatus,
    ResolvedArtist,
)


def features(**overrides):
    values = dict(
        danceability=0.7, energy=0.5, key=5, loudness=-8.0, mode=1,
        speechiness=0.04, acousticness=0.1, instrumentalness=0.8,
        liveness=0.1, valence=0.3, tempo=120.0, time_signature=4,
    )
    values.update(overrides)
    return AudioFeatures(**values)


# Matches no audio profile at all.
NEUTRAL = dict(energy=0.5, instrumentalness=0.1, acousticness=0.1, speechiness=0.0, tempo=110.0)


@pytest.fixture
def classifier():
    return LabelClassifier()


class TestGenreClassification:

    def test_normalize_genre(self):
        assert normalize_genre("  Deep   House ") == "deep-house"

    def test_single_label(self, classifier):
        result = classifier.classify_genres(["deep house", "Tech House"])

        assert result.label == "deep"
        assert result.confidence == pytest.approx(1.0)

    def test_majority_wins(self, classifier):
        result = classifier.classify_genres(["pop", "rock", "techno"])

        assert result.label == "records"
        assert result.confidence == pytest.approx(2 / 3)
        assert result.scores["tech"] == pytest.approx(1 / 3)

    def test_no_match(self, classifier):
        assert classifier.classify_genres(["polka"]) is None
        assert classifier.classify_genres([]) is None

    def test_custom_mappings(self):
        classifier = LabelClassifier(genre_mappings={"club": ["Deep House"], "chill": ["ambient"]})

        assert classifier.labels == ["club", "chill"]
        assert classifier.classify_genres(["deep house"]).label == "club"

    def test_empty_mappings_rejected(self):
        with pytest.raises(ValueError):
            LabelClassifier(genre_mappings={})


class TestTrackClassification:

    def test_genre_and_profile_combine(self, classifier):
        result = classifier.classify_track(features(), ["deep house"])

        assert result.label == "deep"
        assert result.confidence == pytest.approx(1.0)

    def test_profile_alone(self, classifier):
        result = classifier.classify_track(
            features(energy=0.8, instrumentalness=0.5, acousticness=0.1, tempo=128.0)
        )

        assert result.label == "tech"
        assert result.confidence == pytest.approx(0.4)

    def test_explicit_bonus(self, classifier):
        result = classifier.classify_track(features(**NEUTRAL), ["pop"], explicit=True)

        assert result.label == "records"
        assert result.confidence == pytest.approx(0.7)

    def test_slow_tempo_bonus(self, classifier):
        result = classifier.classify_track(features(**{**NEUTRAL, "tempo": 90.0}))

        assert result.label == "deep"
        assert result.confidence == pytest.approx(0.1)

    def test_ties_resolve_in_declaration_order(self, classifier):
        result = classifier.classify_track(features(**NEUTRAL))

        assert result.confidence == 0
        assert result.label == classifier.labels[0]

    def test_profile_bounds_inclusive(self, classifier):
        assert classifier.matches_profile(features(tempo=125.0, energy=0.6, valence=0.6), "deep")
        assert not classifier.matches_profile(features(tempo=125.1), "deep")
        assert not classifier.matches_profile(features(), "unknown")


class TestArtistClassification:

    def test_classify_resolved_artist(self, classifier):
        resolved = ResolvedArtist(
            credit="Nora En Pure",
            primary_name="Nora En Pure",
            status=MatchStatus.FOUND_WITH_IMAGE,
            candidate=ArtistCandidate(id="a1", name="Nora En Pure", genres=frozenset({"deep house"})),
        )

        assert classifier.classify_artist(resolved).label == "deep"

    def test_not_found_artist(self, classifier):
        resolved = ResolvedArtist(credit="X", primary_name="X", status=MatchStatus.NOT_FOUND)

        assert classifier.classify_artist(resolved) is None
