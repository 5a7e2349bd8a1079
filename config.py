import os

import keyring
import yaml
from loguru import logger

from settings_schema import SettingsSchema

APP_VERSION = "1.0.0"
SETTINGS_PATH_ENV = "HYPERTROPHY_SETTINGS"


class SettingsFile:
    """Engine settings mirrored to YAML.

    Connection secrets go to the system keyring when ``ENCRYPT_SETTINGS=1``;
    the file then only records that a secret is stored.
    """

    SECRET_KEYS = frozenset({"db_url"})
    KEYRING_SERVICE = "hypertrophy-engine"

    def __init__(self, path: str | None = None) -> None:
        self.path = path or os.environ.get(SETTINGS_PATH_ENV, "settings.yaml")
        self.use_keyring = os.environ.get("ENCRYPT_SETTINGS") == "1"

    @staticmethod
    def engine_defaults() -> dict:
        return SettingsSchema().model_dump(exclude_none=True)

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must hold a mapping of settings")
        if self.use_keyring:
            for key in self.SECRET_KEYS & set(data):
                secret = keyring.get_password(self.KEYRING_SERVICE, key)
                if secret is None:
                    logger.warning("[CONFIG] Stored secret missing from keyring", key=key)
                    data.pop(key)
                else:
                    data[key] = secret
        return data

    def save(self, data: dict) -> None:
        out = {k: v for k, v in data.items() if v is not None}
        if self.use_keyring:
            for key in self.SECRET_KEYS & set(out):
                keyring.set_password(self.KEYRING_SERVICE, key, str(out[key]))
                out[key] = True
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f, sort_keys=True)
