from dataclasses import dataclass
from os import getenv
from pathlib import Path


@dataclass(frozen=True)
class WikiConfig:
    data_dir: Path
    home_page_name: str = "home-page"
    cache_ttl_seconds: float = 30 * 60
    log_level: str = "WARNING"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "wiki.db"

    @property
    def blobs_dir(self) -> Path:
        return self.data_dir


def load_config() -> WikiConfig:
    return WikiConfig(
        data_dir=Path(getenv("WIKI_DATA_DIR", "data")),
        home_page_name=getenv("WIKI_HOME_PAGE", "home-page"),
        cache_ttl_seconds=float(getenv("WIKI_CACHE_TTL_SECONDS", str(30 * 60))),
        log_level=getenv("WIKI_LOG_LEVEL", "WARNING"),
    )
