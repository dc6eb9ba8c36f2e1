from .queue import MatchmakingQueue, Pairing, default_player_name

__all__ = ["MatchmakingQueue", "Pairing", "default_player_name"]
