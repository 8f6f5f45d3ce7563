"""Configuration service: loads and saves the source registry and options."""
from __future__ import annotations

import json
import logging
import os
from typing import Optional

from pydantic import ValidationError

from vodhub.models.config import Options
from vodhub.models.source import Source, SourceKind

logger = logging.getLogger(__name__)


class ConfigService:
    """Manages application configuration with file persistence.

    The config is kept in-memory after first load and re-read on explicit
    ``load()`` or ``reload()`` calls.  Sources and options are handed to the
    other services as validated pydantic models; nothing else reads the JSON.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.config_file = os.path.join(data_dir, "config.json")
        self._config: dict = self._default_config()

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    @staticmethod
    def _default_config() -> dict:
        return {"sources": [], "options": Options().model_dump(mode="json")}

    # ------------------------------------------------------------------
    # Load / Save
    # ------------------------------------------------------------------

    def load(self) -> dict:
        """Load configuration from disk, filling in defaults."""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    raw = json.load(f)
                options = Options.model_validate(raw.get("options") or {})
                # sources stay raw; each one is validated when read so one bad entry
                # does not discard the whole registry
                raw["sources"] = [s for s in raw.get("sources", []) if isinstance(s, dict)]
                raw["options"] = options.model_dump(mode="json")
                self._config = raw
                return self._config
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.error(f"Error loading config: {e}")

        self._config = self._default_config()
        return self._config

    def reload(self) -> dict:
        """Alias for ``load()``."""
        return self.load()

    def save(self, config: dict | None = None) -> None:
        """Persist the config to disk."""
        if config is not None:
            self._config = config
        os.makedirs(os.path.dirname(self.config_file) or ".", exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)

    @property
    def config(self) -> dict:
        return self._config

    # ------------------------------------------------------------------
    # Source registry
    # ------------------------------------------------------------------

    def get_sources(self) -> list[Source]:
        sources = []
        for raw in self._config.get("sources", []):
            try:
                sources.append(Source.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid source {raw.get('id', '?')}: {e}")
        return sources

    def get_enabled_sources(self) -> list[Source]:
        return [s for s in self.get_sources() if s.enabled]

    def get_source_by_id(self, source_id: str) -> Optional[Source]:
        for source in self.get_sources():
            if source.id == source_id:
                return source
        return None

    def get_default_source(self) -> Optional[Source]:
        """Home source: the configured default if enabled, else the first enabled one."""
        enabled = self.get_enabled_sources()
        default_id = self.options.home.default_source_id
        if default_id:
            for source in enabled:
                if source.id == default_id:
                    return source
        return enabled[0] if enabled else None

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    @property
    def options(self) -> Options:
        return Options.model_validate(self._config.get("options", {}))

    def update_options(self, section: str, values: dict) -> dict:
        """Merge *values* into ``options[section]`` after validating the result."""
        options = self._config.setdefault("options", {})
        merged = dict(options.get(section, {}))
        merged.update(values)
        candidate = dict(options)
        candidate[section] = merged
        validated = Options.model_validate(candidate)
        self._config["options"] = validated.model_dump(mode="json")
        self.save()
        return self._config["options"][section]

    def effective_timeout(self, source: Source) -> int:
        return source.timeout or self.options.network.default_timeout

    def effective_retry(self, source: Source) -> int:
        return source.retry if source.retry is not None else self.options.network.default_retry

    def resolve_proxy_base(self, source: Optional[Source] = None) -> Optional[str]:
        """Forwarder base for *source*: per-source override, global proxy, local forwarder.

        Spider sources are always reached directly.
        """
        if source is not None and source.kind == SourceKind.SPIDER:
            return None
        if source is not None and source.proxy_url:
            return source.proxy_url
        proxy = self.options.proxy
        if proxy.enabled and proxy.proxy_url:
            return proxy.proxy_url
        return self.options.local_proxy_url or None

    @property
    def ad_filtering_enabled(self) -> bool:
        return self.options.playback.ad_filtering

    @property
    def search_concurrency(self) -> int:
        return self.options.search.concurrency
