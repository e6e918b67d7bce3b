import os
from pathlib import Path
from typing import Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE_NAME = ".env"


def env_files(cwd: Optional[Path] = None, home: Optional[Path] = None) -> Tuple[str, ...]:
    """Dotenv files to load, lowest priority first.

    The per-user file under the XDG config dir comes first so a ``.env``
    in the working directory can override it.
    """
    cwd = cwd or Path.cwd()
    home = home or Path.home()
    config_dir = Path(os.environ.get("XDG_CONFIG_HOME") or home / ".config")
    candidates = [config_dir / "snippetbox" / ENV_FILE_NAME, cwd / ENV_FILE_NAME]
    return tuple(str(p) for p in candidates if p.is_file())


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=env_files() or None,
        env_file_encoding="utf-8",
        env_prefix="SNIPPETBOX_",
        extra="ignore",
    )

    # snippet service
    API_BASE_URL: str = "http://localhost:8000"
    HTTP_TIMEOUT_SEC: float = 30.0

    # token storage: "redis" | "memory"
    TOKEN_BACKEND: str = "redis"
    TOKEN_KEY_PREFIX: str = ""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    LOG_LEVEL: str = "INFO"


settings = Settings()
