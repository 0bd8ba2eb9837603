"""
Plain-text rendering of a loaded dashboard for the terminal

Each section is a function returning lines; build_report() concatenates them.
Optional sections print their "no data available" line when the matching
resource was unavailable for this pass.
"""

from typing import List

from ..utils.helpers import format_duration_ms, truncate_string
from .aggregator import DashboardViewModel
from .insights import (
    audio_feature_insights,
    audio_feature_profile,
    danceability_label,
    energy_label,
    genre_distribution,
    genre_diversity,
    genre_insights,
    listening_time,
    mood_label,
    peak_listening_hours,
    personality_breakdown,
)


def _heading(title: str) -> List[str]:
    return ["", title, "-" * len(title)]


def profile_section(view: DashboardViewModel) -> List[str]:
    profile = view.profile
    lines = [f"{profile.display_name}"]
    if profile.email:
        lines.append(profile.email)
    lines.append(f"{profile.followers} followers")
    return lines


def personality_section(view: DashboardViewModel) -> List[str]:
    lines = _heading("🎵 Your Music Personality")
    if not view.personality_available or not view.personality:
        lines.append("No personality data available")
        return lines

    for entry in personality_breakdown(view.personality):
        prefix = f"{entry.emoji} " if entry.emoji else ""
        lines.append(f"{prefix}{entry.label}: {entry.display_percentage}")
        if entry.description:
            lines.append(f"    {entry.description}")
        if entry.traits:
            lines.append(f"    Traits: {', '.join(entry.traits)}")
    return lines


def stats_section(view: DashboardViewModel) -> List[str]:
    lines = _heading("📊 Your Listening Stats")
    stats = view.stats
    if not view.stats_available or stats is None:
        lines.append("No listening stats available")
        return lines

    total = listening_time(stats.total_listening_time_ms)
    features = stats.average_features
    energy = features.get('energy', 0) or 0
    dance = features.get('danceability', 0) or 0
    lines.extend([
        f"Listening time: {total.hours}h ({total.minutes} minutes)",
        f"Mood score: {round(stats.mood_score * 100)}% {mood_label(stats.mood_score)}",
        f"Energy level: {round(energy * 100)}% {energy_label(energy)}",
        f"Danceability: {round(dance * 100)}% {danceability_label(dance)}",
    ])

    lines.extend(_heading("🔍 Audio Features"))
    for reading in audio_feature_profile(features):
        lines.append(f"{reading.label:<14}{reading.percent:>4}%  {reading.description}")
    for insight in audio_feature_insights(features):
        lines.append(f"  {insight}")

    lines.extend(_heading("🎭 Your Genre Universe"))
    if not stats.top_genres:
        lines.append("No genre data available")
    else:
        for index, genre_slice in enumerate(genre_distribution(stats.top_genres), start=1):
            lines.append(f"#{index} {genre_slice.genre}: {genre_slice.count} artists ({genre_slice.percentage}%)")
        lines.append(f"Diversity score: {genre_diversity(len(stats.top_genres))}")
        for insight in genre_insights(stats.top_genres):
            lines.append(f"  {insight}")

    lines.extend(_heading("🕒 When You Listen Most"))
    hours = peak_listening_hours(stats.listening_trends)
    if not hours:
        lines.append("No listening trend data available")
    for reading in hours:
        bar = "█" * max(1, round(reading.relative / 10)) if reading.count else ""
        lines.append(f"{reading.label:>6} {bar:<10} {reading.count}")
    return lines


def artists_section(view: DashboardViewModel) -> List[str]:
    lines = _heading("🎤 Your Top Artists")
    for index, artist in enumerate(view.top_artists, start=1):
        genres = f" ({', '.join(artist.genres[:2])})" if artist.genres else ""
        lines.append(f"#{index} {artist.name}{genres}  popularity {artist.popularity}")
    return lines


def tracks_section(view: DashboardViewModel) -> List[str]:
    lines = _heading("🎧 Your Top Tracks")
    for index, track in enumerate(view.top_tracks, start=1):
        title = truncate_string(f"{track.name} - {track.artist_names}", 60)
        lines.append(f"#{index:<3}{title}  {format_duration_ms(track.duration_ms)}")
    return lines


def build_report(view: DashboardViewModel) -> List[str]:
    """All report sections in display order"""
    return (
        profile_section(view)
        + personality_section(view)
        + stats_section(view)
        + artists_section(view)
        + tracks_section(view)
    )
