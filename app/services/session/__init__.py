from .registry import SessionRegistry, new_session_id

__all__ = ["SessionRegistry", "new_session_id"]
