"""
Insight derivation for the year-in-review dashboard

Pure functions that turn aggregated numbers into ranked, human-readable
observations. Nothing here performs I/O or keeps state, and every function is
total: absent or zero inputs produce fewer statements, never an exception.

Derivations:

1. **Audio-feature insights**: fixed rules over danceability, energy,
   valence, acousticness and instrumentalness. Missing features count as 0.
   Rules are evaluated in declaration order; a value inside a rule's silent
   band contributes nothing.
2. **Genre insights**: top genre, a diversity statement keyed on the number
   of distinct genres, and at most one statement per keyword family
   (pop, rock, jazz, electronic/edm), matched case-insensitively as substrings.
3. **Personality labeling**: display label, emoji and color for each known
   category, with a neutral fallback for unknown identifiers. Percentages are
   shown exactly as delivered.

Supporting derivations used by the report (feature percentages, stat-card
labels, busiest listening hours, genre chart slices) live here as well.
"""

from collections import namedtuple
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..api.models import GenreCount, PersonalityCategory, PersonalityProfile
from ..utils.helpers import format_hour_label, format_percentage


# ---------------------------------------------------------------------------
# Audio features
# ---------------------------------------------------------------------------

HIGH_THRESHOLD = 0.7
LOW_THRESHOLD = 0.3


@dataclass(frozen=True)
class FeatureRule:
    """
    Threshold rule for one audio feature

    A statement is emitted when the value is strictly above `high` or strictly
    below `low`. A None threshold disables that side of the rule.
    """
    feature: str
    high: Optional[float]
    high_statement: Optional[str]
    low: Optional[float] = None
    low_statement: Optional[str] = None

    def statement_for(self, value: float) -> Optional[str]:
        if self.high is not None and value > self.high:
            return self.high_statement
        if self.low is not None and value < self.low:
            return self.low_statement
        return None


AUDIO_FEATURE_RULES: Tuple[FeatureRule, ...] = (
    FeatureRule(
        'danceability',
        HIGH_THRESHOLD, "🕺 Your music is highly danceable - perfect for parties!",
        LOW_THRESHOLD, "🎼 You prefer less danceable, more contemplative music",
    ),
    FeatureRule(
        'energy',
        HIGH_THRESHOLD, "⚡ You love high-energy, intense tracks",
        LOW_THRESHOLD, "🕯️ You gravitate toward calm, peaceful music",
    ),
    FeatureRule(
        'valence',
        HIGH_THRESHOLD, "😊 Your music taste is very upbeat and positive",
        LOW_THRESHOLD, "🖤 You appreciate melancholic or darker moods",
    ),
    # Acoustic and instrumental listening are notable well below 0.7
    FeatureRule('acousticness', 0.5, "🎸 You have a preference for acoustic, organic sounds"),
    FeatureRule('instrumentalness', 0.3, "🎹 You enjoy instrumental music without vocals"),
)


def _feature_value(features: Optional[Mapping[str, float]], name: str) -> float:
    if not features:
        return 0.0
    value = features.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def audio_feature_insights(features: Optional[Mapping[str, float]]) -> List[str]:
    """
    Qualitative statements about average audio features

    Args:
        features: Feature name to average value; missing names count as 0

    Returns:
        Statements in rule declaration order
    """
    insights = []
    for rule in AUDIO_FEATURE_RULES:
        statement = rule.statement_for(_feature_value(features, rule.feature))
        if statement:
            insights.append(statement)
    return insights


FeatureReading = namedtuple('FeatureReading', ['feature', 'label', 'percent', 'description'])

RADAR_FEATURES = (
    ('danceability', 'Danceability', 'How suitable the music is for dancing'),
    ('energy', 'Energy', 'Intensity and powerful feeling'),
    ('valence', 'Valence', 'Musical positivity (happiness)'),
    ('acousticness', 'Acousticness', 'Whether the track is acoustic'),
    ('liveness', 'Liveness', 'Presence of audience in recording'),
    ('speechiness', 'Speechiness', 'Presence of spoken words'),
)


def audio_feature_profile(features: Optional[Mapping[str, float]]) -> List[FeatureReading]:
    """Rounded 0-100 readings for the six charted features; values are not clamped"""
    return [
        FeatureReading(name, label, round(_feature_value(features, name) * 100), description)
        for name, label, description in RADAR_FEATURES
    ]


def mood_label(score: float) -> str:
    if score > 0.7:
        return "😊 Happy"
    if score > 0.5:
        return "😐 Neutral"
    return "😔 Chill"


def energy_label(value: float) -> str:
    if value > 0.7:
        return "⚡ High Energy"
    if value > 0.5:
        return "🔋 Medium Energy"
    return "🕯️ Low Energy"


def danceability_label(value: float) -> str:
    if value > 0.7:
        return "💃 Dance Party"
    if value > 0.5:
        return "🎵 Groovy"
    return "🎼 Chill Vibes"


# ---------------------------------------------------------------------------
# Genres
# ---------------------------------------------------------------------------

DIVERSE_MIN_GENRES = 5
FOCUSED_MAX_GENRES = 3

# Keyword families: any genre containing one of the keywords triggers the statement once
GENRE_KEYWORD_STATEMENTS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (('pop',), "📻 You enjoy mainstream pop music"),
    (('rock',), "🎸 Rock music is part of your identity"),
    (('jazz',), "🎺 You appreciate the sophistication of jazz"),
    (('electronic', 'edm'), "🎹 Electronic beats energize your playlist"),
)

GenreInput = Union[GenreCount, Tuple[str, int]]


def _normalize_genres(genres: Optional[Iterable[GenreInput]]) -> List[GenreCount]:
    normalized = []
    for entry in genres or ():
        if isinstance(entry, GenreCount):
            normalized.append(entry)
        else:
            genre, count = entry
            normalized.append(GenreCount(genre=str(genre), count=count))
    return normalized


def genre_insights(genres: Optional[Iterable[GenreInput]]) -> List[str]:
    """
    Statements about genre preferences

    Args:
        genres: Ranked GenreCount entries or (genre, count) pairs

    Returns:
        Top-genre statement, then the diversity statement (if any), then one
        statement per matched keyword family in vocabulary order
    """
    entries = _normalize_genres(genres)
    if not entries:
        return []

    insights = []

    # max() keeps the first of equal counts, so ranked input keeps its leader
    top = max(entries, key=lambda g: g.count)
    insights.append(f"🎵 Your top genre is {top.genre} with {top.count} artists")

    names = [g.genre.lower() for g in entries]
    distinct = len(set(names))
    if distinct >= DIVERSE_MIN_GENRES:
        insights.append(f"🌈 You have diverse taste with {distinct} different genres")
    elif distinct <= FOCUSED_MAX_GENRES:
        insights.append(f"🎯 You have focused taste with {distinct} main genres")

    for keywords, statement in GENRE_KEYWORD_STATEMENTS:
        if any(keyword in name for name in names for keyword in keywords):
            insights.append(statement)

    return insights


def genre_diversity(genre_count: int) -> str:
    if genre_count >= 8:
        return "High"
    if genre_count >= 4:
        return "Medium"
    return "Low"


GenreSlice = namedtuple('GenreSlice', ['genre', 'count', 'percentage'])


def genre_distribution(genres: Optional[Iterable[GenreInput]], top: int = 8) -> List[GenreSlice]:
    """
    Chart slices: the first `top` genres plus an "Others" slice for the rest

    Percentages are shares of the total count rounded to one decimal; they
    are all 0.0 when the total is zero.
    """
    entries = _normalize_genres(genres)
    slices = [(g.genre, g.count) for g in entries[:top]]
    other_count = sum(g.count for g in entries[top:])
    if other_count > 0:
        slices.append(("Others", other_count))

    total = sum(count for _, count in slices)
    return [
        GenreSlice(genre, count, round(count / total * 100, 1) if total else 0.0)
        for genre, count in slices
    ]


# ---------------------------------------------------------------------------
# Listening time
# ---------------------------------------------------------------------------

ListeningTime = namedtuple('ListeningTime', ['hours', 'minutes'])
HourReading = namedtuple('HourReading', ['hour', 'label', 'count', 'relative'])


def listening_time(total_ms: int) -> ListeningTime:
    """Total listening time as rounded hours and rounded minutes"""
    total_ms = max(0, total_ms or 0)
    return ListeningTime(hours=round(total_ms / 3_600_000), minutes=round(total_ms / 60_000))


def peak_listening_hours(trends: Optional[Mapping[int, int]], limit: int = 6) -> List[HourReading]:
    """
    Busiest hours of the day, most plays first

    `relative` is the play count as a percentage of the busiest hour.
    Ties keep ascending hour order.
    """
    if not trends:
        return []

    ranked = sorted(trends.items(), key=lambda item: (-item[1], item[0]))[:limit]
    peak = max(trends.values())
    return [
        HourReading(hour, format_hour_label(hour), count, (count / peak * 100) if peak > 0 else 0.0)
        for hour, count in ranked
    ]


# ---------------------------------------------------------------------------
# Personality
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PersonalityStyle:
    """Display attributes for one personality category"""
    label: str
    emoji: str
    color: str


DEFAULT_PERSONALITY_COLOR = '#8884d8'

PERSONALITY_STYLES: Dict[PersonalityCategory, PersonalityStyle] = {
    PersonalityCategory.PERFORMATIVE: PersonalityStyle('Performative', '🎭', '#FF6B6B'),
    PersonalityCategory.AVANT_GARDE: PersonalityStyle('Avant-garde', '🎨', '#4ECDC4'),
    PersonalityCategory.PANDERING: PersonalityStyle('Feel-good', '😊', '#45B7D1'),
    PersonalityCategory.SOPHISTICATED: PersonalityStyle('Sophisticated', '🎼', '#96CEB4'),
    PersonalityCategory.EXPLORER: PersonalityStyle('Explorer', '🌍', '#FFEAA7'),
    PersonalityCategory.TRENDSETTER: PersonalityStyle('Trendsetter', '🚀', '#DDA0DD'),
}

# Adding a category without a style must fail at import, not fall back silently
_unstyled = set(PersonalityCategory) - set(PERSONALITY_STYLES)
if _unstyled:
    raise RuntimeError(f"Personality categories without display style: {sorted(c.value for c in _unstyled)}")


def personality_style(category: Union[str, PersonalityCategory]) -> PersonalityStyle:
    """
    Label, emoji and color for a category identifier

    Unknown identifiers use the raw identifier as label, no emoji and the
    neutral default color.
    """
    kind = category if isinstance(category, PersonalityCategory) else PersonalityCategory.parse(category)
    if kind is None:
        return PersonalityStyle(label=str(category), emoji='', color=DEFAULT_PERSONALITY_COLOR)
    return PERSONALITY_STYLES[kind]


PersonalityEntry = namedtuple(
    'PersonalityEntry', ['category', 'label', 'emoji', 'color', 'percentage', 'display_percentage',
                         'description', 'traits']
)


def personality_breakdown(profiles: Optional[Sequence[PersonalityProfile]]) -> List[PersonalityEntry]:
    """Styled personality entries in input order, percentages as given"""
    entries = []
    for profile in profiles or ():
        style = personality_style(profile.category)
        entries.append(PersonalityEntry(
            category=profile.category,
            label=style.label,
            emoji=style.emoji,
            color=style.color,
            percentage=profile.percentage,
            display_percentage=format_percentage(profile.percentage),
            description=profile.description,
            traits=list(profile.traits),
        ))
    return entries
