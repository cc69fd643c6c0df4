# src/thinko_space/core/credentials.py

from __future__ import annotations

import logging

from .ports import KeyValueStore

logger = logging.getLogger(__name__)

API_KEY_KEY = "llm_api_key"
MODEL_KEY = "llm_model"


class Credentials:
    """
    API key + model selection.

    Key lookup order: key-value store (set with /key) -> settings (environment / .env) -> "".
    Model lookup order: key-value store -> first configured model.
    """

    def __init__(self, settings, kv: KeyValueStore) -> None:
        self._settings = settings
        self._kv = kv

    @property
    def api_key(self) -> str:
        stored = (self._kv.get(API_KEY_KEY) or "").strip()
        if stored:
            return stored
        return self.env_api_key

    @property
    def env_api_key(self) -> str:
        return (getattr(self._settings, "llm_api_key", None) or "").strip()

    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def masked_api_key(self) -> str:
        key = self.api_key
        if not key:
            return "(not set)"
        if len(key) <= 8:
            return "*" * len(key)
        return f"{key[:4]}...{key[-4:]}"

    def save_api_key(self, key: str) -> None:
        key = (key or "").strip()
        if not key:
            self._kv.delete(API_KEY_KEY)
            logger.info("API key cleared from storage")
            return
        self._kv.set(API_KEY_KEY, key)
        logger.info("API key saved to storage")

    @property
    def model(self) -> str:
        stored = (self._kv.get(MODEL_KEY) or "").strip()
        if stored:
            return stored
        models = list(getattr(self._settings, "llm_models", []) or [])
        return models[0] if models else ""

    def save_model(self, model: str) -> None:
        model = (model or "").strip()
        if not model:
            self._kv.delete(MODEL_KEY)
            return
        self._kv.set(MODEL_KEY, model)
        logger.info("Model set to %s", model)
