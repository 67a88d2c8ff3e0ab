import io
import os
import sys
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("GEMINI_DISABLED", "1")
os.environ.pop("USE_LOCAL_DB", None)


def make_image_bytes(w=40, h=20, color=(200, 120, 40), fmt="PNG") -> bytes:
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, :] = color
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def make_asset():
    from src.domain.entities.image_asset import ImageAsset

    def _make(w=40, h=20, color=(200, 120, 40), fmt="PNG"):
        mime = "image/png" if fmt == "PNG" else "image/jpeg"
        return ImageAsset(data=make_image_bytes(w, h, color, fmt), mime_type=mime)

    return _make


@pytest.fixture(autouse=True)
def empty_store():
    # the in-memory store is module level
    from src.infrastructure.database.repositories.session_repository import SessionRepository

    SessionRepository(None).replace_all([])
    yield
    SessionRepository(None).replace_all([])


@pytest.fixture()
def client():
    # lazy import after env configured
    from src.main import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
