"""Test the text report"""

from wrapped_so_far.api.models import (
    ArtistSummary,
    ListeningStats,
    PersonalityProfile,
    TrackSummary,
    UserProfile,
)
from wrapped_so_far.dashboard.aggregator import DashboardBuilder, Fetched, OptionalResource
from wrapped_so_far.dashboard.report import build_report
from wrapped_so_far.exceptions import OptionalDataUnavailable


def make_view(profile_data, artist_data, track_data, stats=None, personality=None):
    builder = DashboardBuilder().with_required(
        UserProfile.from_api_data(profile_data),
        [ArtistSummary.from_api_data(artist_data)],
        [TrackSummary.from_api_data(track_data)],
    )
    for kind, value in ((OptionalResource.STATS, stats), (OptionalResource.PERSONALITY, personality)):
        result = Fetched.ok(value) if value is not None else Fetched.unavailable(OptionalDataUnavailable(kind))
        builder.with_optional(kind, result)
    return builder.build()


class TestReport:
    """Test report sections"""

    def test_full_report(self, profile_data, artist_data, track_data, stats_data, personality_data):
        view = make_view(
            profile_data, artist_data, track_data,
            stats=ListeningStats.from_api_data(stats_data),
            personality=[PersonalityProfile.from_api_data(p) for p in personality_data['personality_breakdown']],
        )

        text = "\n".join(build_report(view))

        assert "Test Listener" in text
        assert "🌍 Explorer: 72.5%" in text
        assert "Listening time: 2h (120 minutes)" in text
        assert "🎯 You have focused taste with 3 main genres" in text
        assert "⚡ You love high-energy, intense tracks" in text
        assert "#1 Test Artist (indie pop, dream pop)" in text
        assert "Test Song - Test Artist, Guest" in text
        assert "3:30" in text
        assert "No listening stats available" not in text

    def test_unavailable_sections(self, profile_data, artist_data, track_data):
        view = make_view(profile_data, artist_data, track_data)

        lines = build_report(view)

        assert "No personality data available" in lines
        assert "No listening stats available" in lines
        # Required sections still render
        assert any("Test Artist" in line for line in lines)

    def test_unknown_personality_has_no_emoji(self, profile_data, artist_data, track_data):
        view = make_view(
            profile_data, artist_data, track_data,
            personality=[PersonalityProfile('nostalgic', 12)],
        )

        assert "nostalgic: 12.0%" in build_report(view)

    def test_stats_without_genres_or_trends(self, profile_data, artist_data, track_data):
        view = make_view(profile_data, artist_data, track_data, stats=ListeningStats())

        lines = build_report(view)

        assert "No genre data available" in lines
        assert "No listening trend data available" in lines
