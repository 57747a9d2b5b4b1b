"""Progress tracking data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BackfillProgress:
    """Progress information for a batch fill run."""
    current_batch: int
    total_batches: int
    current_game: str
    games_processed: int
    total_games: int
    games_updated: int
    games_failed: int
    errors: list[str]
    games_skipped: int = 0  # already resolved by a previous run
