from aggregator.sources.base import BaseSource
from aggregator.sources.content import ContentSource
from aggregator.sources.fitness import FitnessSource
from aggregator.sources.social_graph import SocialGraphSource

__all__ = [
    "BaseSource",
    "ContentSource",
    "FitnessSource",
    "SocialGraphSource",
]
