import os
import tempfile

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "ROON_MPRIS_"}

    zone: str = ""
    debug: bool = False
    api_host: str = "127.0.0.1"
    api_port: int = 5006
    log_level: str = "INFO"
    log_json: bool = False
    art_cache_dir: str = os.path.join(tempfile.gettempdir(), "roon-mpris-art")
    art_size: int = 512
    core_host: str | None = None
    core_port: int = 9330
    token_file: str | None = None
    discovery_retries: int = 3
    removal_check_interval: float = 2.0
    bus_name: str = "org.mpris.MediaPlayer2.roon"


settings = Settings()
