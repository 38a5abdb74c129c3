"""Source-specific adapters layered on the engine primitives."""

from .leaderboard import LeaderboardAdapter, LeaderboardEntry, LeaderboardResult, leaderboard_to_records

__all__ = ["LeaderboardAdapter", "LeaderboardEntry", "LeaderboardResult", "leaderboard_to_records"]
