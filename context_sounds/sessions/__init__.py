"""
Módulo de gerenciamento de sessões de sons
"""
from .manager import SessionManager
from .session import SoundSession

__all__ = ["SessionManager", "SoundSession"]
