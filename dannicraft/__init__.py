"""danniCRAFT: a personality-driven Minecraft bot with MCP tools.

This package provides the connection lifecycle around an external game
client and the fishing tools built on top of it.
"""

from dannicraft.bot_connection import (
    BotConnection,
    ConnectionCallbacks,
    ConnectionCheck,
    ConnectionState,
)
from dannicraft.config import (
    ConnectionConfig,
    FishingConfig,
    ReconnectConfig,
)
from dannicraft.fishing import (
    FishingSession,
    FishingSessions,
    classify_catch,
)
from dannicraft.game_client import (
    GameClient,
    GameClientError,
    GameEvent,
    RealmSelectionError,
)

__all__ = [
    # Connection
    "BotConnection",
    "ConnectionCallbacks",
    "ConnectionCheck",
    "ConnectionState",
    # Configuration
    "ConnectionConfig",
    "FishingConfig",
    "ReconnectConfig",
    # Fishing
    "FishingSession",
    "FishingSessions",
    "classify_catch",
    # Game client
    "GameClient",
    "GameClientError",
    "GameEvent",
    "RealmSelectionError",
]
