"""Shared fixtures: in-memory SQLite per test, media on tmp_path, real Pillow images."""

import io
import os
import tempfile

# Settings are read at import time; point them somewhere harmless first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MEDIA_ROOT", os.path.join(tempfile.gettempdir(), "dealer-catalog-test-media"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from PIL import Image
from sqlalchemy.orm import sessionmaker

import dealer_catalog.models  # noqa: F401
from dealer_catalog.database import Base, build_engine
from dealer_catalog.dependencies import build_services
from dealer_catalog.schemas.category import CategoryCreateRequest
from dealer_catalog.schemas.vehicle import VehicleCreateRequest
from dealer_catalog.storage import LocalStorage
from dealer_catalog.utils.imaging import ImageProcessor
from dealer_catalog.utils.locks import KeyedLocks


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture(scope="session")
def processor():
    p = ImageProcessor(thumbnail_size=(300, 200), max_dimension=2560, workers=2)
    yield p
    p.shutdown()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "media"), "/media")


@pytest.fixture
def services(db, storage, processor):
    return build_services(db, storage, processor, locks=KeyedLocks())


@pytest.fixture
def make_image():
    def _make(width=1000, height=800, fmt="JPEG", mode="RGB", color=(200, 30, 30)):
        img = Image.new(mode, (width, height), color)
        buf = io.BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()
    return _make


@pytest.fixture
def dump_category(services):
    return services.categories.create_category(
        CategoryCreateRequest(nameLocal="ダンプ", nameGlobal="Dump", slug="dump")
    )


@pytest.fixture
def crane_category(services):
    return services.categories.create_category(
        CategoryCreateRequest(nameLocal="クレーン", nameGlobal="Crane", slug="crane")
    )


@pytest.fixture
def vehicle_input():
    def _build(**overrides) -> VehicleCreateRequest:
        data = {
            "category": "dump",
            "make": "Isuzu",
            "model": "Forward",
            "year": 2020,
            "mileage": 50000,
            "price": 5_000_000,
            "engineType": "Diesel 5.2L",
            "dimensions": {"length": 7.45, "width": 2.21, "height": 2.9},
            "condition": "good",
            "features": ["パワーゲート", "ETC", "Back camera"],
            "descriptionLocal": "走行距離少なめの4tダンプ",
            "descriptionGlobal": "Low mileage 4t dump truck",
        }
        data.update(overrides)
        return VehicleCreateRequest(**data)
    return _build


def stored_files(storage: LocalStorage) -> list[str]:
    found = []
    for root, _dirs, files in os.walk(storage.root):
        for name in files:
            found.append(os.path.relpath(os.path.join(root, name), storage.root))
    return sorted(found)


@pytest.fixture
def list_stored_files(storage):
    return lambda: stored_files(storage)
