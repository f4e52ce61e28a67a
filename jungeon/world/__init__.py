from .coins import CoinSpawner
from .engine import Envelope, Outcome, WorldEngine
from .ghosts import GhostManager
from .loader import WorldLoader
from .minimap import MinimapGenerator
from .repository import WorldRepository

__all__ = [
    "CoinSpawner",
    "Envelope",
    "GhostManager",
    "MinimapGenerator",
    "Outcome",
    "WorldEngine",
    "WorldLoader",
    "WorldRepository",
]
