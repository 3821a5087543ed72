from reliability.sources.base import SourceAdapter
from reliability.sources.bbc import BBCSportAdapter
from reliability.sources.besoccer import BesoccerAdapter
from reliability.sources.flashscore import FlashscoreAdapter
from reliability.sources.football_data import FootballDataAdapter

__all__ = [
    "SourceAdapter",
    "BBCSportAdapter",
    "BesoccerAdapter",
    "FlashscoreAdapter",
    "FootballDataAdapter",
]
