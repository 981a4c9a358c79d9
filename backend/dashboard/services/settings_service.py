"""Settings service used by the API and by anything that needs a credential.

Credentials are stored in the database and fall back to environment variables.
"""
import logging
import os
from typing import Any, Dict, List, Optional

from dashboard.core.config import settings
from dashboard.db.engine import engine
from dashboard.models.user_setting import UserSetting
from dashboard.services import service_catalog
from dashboard.services.api_key_cache import ApiKeyCache, api_key_cache
from dashboard.services.key_validation import validate_key_format
from dashboard.services.settings_store import (
    SettingNotFound,
    SettingsStore,
    SqlSettingsStore,
    require_service_name,
)

logger = logging.getLogger(__name__)


def mask_value(value: str) -> str:
    """Show first 4 and last 4 chars if long enough."""
    if not value:
        return ""
    if len(value) > 10:
        return f"{value[:4]}...{value[-4:]}"
    return "****"


class SettingsService:
    def __init__(
        self,
        store: SettingsStore,
        cache: Optional[ApiKeyCache] = None,
        user_id: Optional[str] = None,
    ):
        self.store = store
        self.cache = cache if cache is not None else api_key_cache
        self._user_id = user_id

    @property
    def user_id(self) -> str:
        return self._user_id or settings.DEFAULT_USER_ID

    def list_settings(self) -> List[UserSetting]:
        return self.store.list(self.user_id)

    def get_setting(self, service_name: str) -> UserSetting:
        return self.store.get(self.user_id, service_name)

    def save_setting(
        self,
        service_name: Optional[str],
        api_key: Optional[str] = None,
        additional_config: Optional[Dict[str, Any]] = None,
    ) -> UserSetting:
        service_name = require_service_name(service_name)
        if settings.VALIDATE_KEYS_ON_SAVE and api_key:
            api_key = validate_key_format(service_name, api_key)

        setting = self.store.upsert(self.user_id, service_name, api_key, additional_config)
        self.cache.clear()
        return setting

    def delete_setting(self, service_name: Optional[str]) -> None:
        service_name = require_service_name(service_name)
        self.store.delete(self.user_id, service_name)
        self.cache.clear()

    def get_api_key(self, service_name: str) -> Optional[str]:
        """
        Get the API key for a service.

        Priority:
        1. Cached value younger than the cache TTL
        2. Stored value (if set and non-empty), which repopulates the cache
        3. Environment variable from the service catalog
        """
        hit, cached = self.cache.get(service_name)
        if hit:
            return cached

        try:
            stored = self.store.get(self.user_id, service_name).api_key
        except SettingNotFound:
            stored = ""
        if stored:
            self.cache.set(service_name, stored)
            return stored

        env_var = service_catalog.env_var_for(service_name)
        env_value = os.environ.get(env_var) if env_var else None
        if env_value:
            return env_value

        return None

    def is_service_configured(self, service_name: str) -> bool:
        api_key = self.get_api_key(service_name)
        return bool(api_key and api_key.strip())

    def get_service_overview(self) -> List[Dict[str, Any]]:
        """
        Get the configuration state of every known service.

        Stored services missing from the catalog are listed after it with an
        empty category. Values are masked; the raw key never leaves this method.
        """
        stored = {s.service_name: s for s in self.list_settings()}
        names = [service.name for service in service_catalog.iter_services()]
        names += [name for name in stored if name not in service_catalog.SERVICES]

        overview = []
        for name in names:
            info = service_catalog.get_service(name)
            setting = stored.get(name)
            db_value = setting.api_key if setting else ""

            env_value = ""
            if info and info.env_var:
                env_value = os.environ.get(info.env_var, "")

            # Use DB value if set, otherwise env var
            current_value = db_value if db_value else env_value

            overview.append({
                "service_name": name,
                "category": info.category if info else "",
                "description": info.description if info else "",
                "value": mask_value(current_value),
                "is_set": bool(current_value),
                "source": "database" if db_value else ("environment" if env_value else "none"),
                "has_additional_config": bool(setting and setting.additional_config),
            })

        return overview


settings_service = SettingsService(SqlSettingsStore(engine))


def get_settings_service() -> SettingsService:
    return settings_service
