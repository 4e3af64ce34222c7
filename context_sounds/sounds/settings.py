"""
Settings do engine (snapshot somente leitura + store para atualizações).
"""

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import SoundCategory
from ..config import (
    DEFAULT_ENABLED,
    DEFAULT_VOLUME,
    DEFAULT_MAX_CONCURRENT_SOUNDS,
    DEFAULT_PREVENT_REPEAT_MS,
    DEFAULT_CONTEXT_SENSITIVITY,
    DEFAULT_AI_ANALYSIS_TIMEOUT_MS,
    DEFAULT_ENABLED_CATEGORIES,
)


class Settings(BaseModel):
    """
    Snapshot imutável das configurações.

    Aceita as chaves camelCase usadas pelo cliente (contextSensitivity,
    preventRepeatMs, ...) e os nomes snake_case. Chaves ausentes usam os
    valores padrão de config.py.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    enabled: bool = DEFAULT_ENABLED
    volume: float = Field(DEFAULT_VOLUME, ge=0.0, le=1.0)
    max_concurrent_sounds: int = Field(DEFAULT_MAX_CONCURRENT_SOUNDS, ge=0, alias="maxConcurrentSounds")
    prevent_repeat_ms: int = Field(DEFAULT_PREVENT_REPEAT_MS, ge=0, alias="preventRepeatMs")
    context_sensitivity: float = Field(DEFAULT_CONTEXT_SENSITIVITY, ge=0.0, le=1.0, alias="contextSensitivity")
    debug_mode: bool = Field(False, alias="debugMode")
    use_ai_analysis: bool = Field(False, alias="useAiAnalysis")
    ai_analysis_timeout_ms: int = Field(DEFAULT_AI_ANALYSIS_TIMEOUT_MS, gt=0, alias="aiAnalysisTimeout")
    enabled_categories: Dict[str, bool] = Field(
        default_factory=lambda: dict(DEFAULT_ENABLED_CATEGORIES), alias="enabledCategories"
    )

    @field_validator("enabled_categories", mode="before")
    @classmethod
    def _fill_categories(cls, value: Any) -> Dict[str, bool]:
        if value is None:
            return dict(DEFAULT_ENABLED_CATEGORIES)
        if not isinstance(value, Mapping):
            # Tipo inválido segue para a validação do pydantic
            return value
        return {**DEFAULT_ENABLED_CATEGORIES, **value}

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]] = None) -> "Settings":
        return cls.model_validate(dict(raw or {}))

    @property
    def cooldown_seconds(self) -> float:
        return self.prevent_repeat_ms / 1000.0

    @property
    def ai_analysis_timeout_seconds(self) -> float:
        return self.ai_analysis_timeout_ms / 1000.0

    def category_enabled(self, category: SoundCategory) -> bool:
        return self.enabled_categories.get(category.value, True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class SettingsStore:
    """Guarda o snapshot atual; atualizações geram um novo snapshot."""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or Settings()

    def snapshot(self) -> Settings:
        return self._settings

    def update(self, changes: Mapping[str, Any]) -> Settings:
        """Mescla mudanças parciais (levanta pydantic.ValidationError se inválidas)."""
        merged = self._settings.to_dict()
        changes = dict(changes)
        invalid_categories = None
        for key in ("enabled_categories", "enabledCategories"):
            categories = changes.pop(key, None)
            if categories is None:
                continue
            if isinstance(categories, Mapping):
                merged["enabledCategories"] = {**merged["enabledCategories"], **categories}
            else:
                invalid_categories = categories
        if invalid_categories is not None:
            # Tipo inválido segue para a validação do pydantic
            merged["enabledCategories"] = invalid_categories
        for name, value in changes.items():
            field = Settings.model_fields.get(name)
            merged[field.alias if field and field.alias else name] = value
        self._settings = Settings.model_validate(merged)
        return self._settings
