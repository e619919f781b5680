"""Runtime settings, overridable through FLASHDECK_* environment variables."""
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".flashdeck"
    db_filename: str = "flashdeck.db"
    log_filename: str = "flashdeck.log"
    log_level: str = "INFO"
    session_ttl_hours: int = 24 * 7
    default_study_goal: int = 20

    model_config = {"env_prefix": "FLASHDECK_"}

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename

    @property
    def log_path(self) -> Path:
        return self.data_dir / self.log_filename


settings = Settings()
