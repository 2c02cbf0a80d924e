import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    # Ensure `import wiki...` works without installing the package.
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


@pytest.fixture
def store(tmp_path: Path):
    from wiki.features.content.service import ContentStore
    from wiki.infra.cache import ListingCache
    from wiki.infra.db import DbConfig
    from wiki.infra.storage import BlobStore

    return ContentStore(
        db=DbConfig(path=tmp_path / "wiki.db"),
        blobs=BlobStore(tmp_path),
        cache=ListingCache(),
        home_page_name="home-page",
    )
