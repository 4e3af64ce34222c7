"""
Estado mutável de playback de uma sessão.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from .backend import DecodedBuffer


@dataclass
class EngineState:
    """
    Estado do engine durante uma sessão (criado uma vez e passado por referência).

    - recently_played_at: som -> instante do último play (cooldown)
    - last_variation_index: som -> índice da última variação escolhida
    - loaded_buffers: "<som>_<variação>" -> buffer decodificado
    - in_flight_loads: "<som>_<variação>" -> task de carregamento em andamento
    - dispatching: sons com play em andamento
    """
    recently_played_at: Dict[str, float] = field(default_factory=dict)
    last_variation_index: Dict[str, int] = field(default_factory=dict)
    loaded_buffers: Dict[str, DecodedBuffer] = field(default_factory=dict)
    in_flight_loads: Dict[str, "asyncio.Task[DecodedBuffer]"] = field(default_factory=dict)
    dispatching: Set[str] = field(default_factory=set)
    initialized: bool = False

    def seconds_since_played(self, sound_key: str, now: float) -> Optional[float]:
        played_at = self.recently_played_at.get(sound_key)
        if played_at is None:
            return None
        return now - played_at

    def is_cooling_down(self, sound_key: str, now: float, cooldown_seconds: float) -> bool:
        if sound_key in self.dispatching:
            return True
        elapsed = self.seconds_since_played(sound_key, now)
        return elapsed is not None and elapsed < cooldown_seconds

    def mark_played(self, sound_key: str, at: float) -> None:
        self.recently_played_at[sound_key] = at
