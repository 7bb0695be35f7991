import os
import tempfile
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="storefront-uploads-"))
os.environ["STORAGE_BACKEND"] = "local"
os.environ["EXPOSE_ERROR_DETAILS"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront import models
from storefront.database import Base, get_db
from storefront.main import app
from storefront.storage import LocalStorage, get_storage


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "uploads"), "/uploads")


@pytest.fixture
def client(session_factory, storage):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def catalog(db):
    """One visible category holding one product with two variants."""
    category = models.Category(name="Shirts", slug="shirts")
    product = models.Product(
        name="Linen Shirt",
        slug="linen-shirt",
        category=category,
        features=["breathable"],
        variants=[
            models.ProductVariant(name="S", price=Decimal("19.99"), stock=5, is_default=True),
            models.ProductVariant(name="M", price=Decimal("21.50"), stock=3, sort_order=1),
        ],
    )
    db.add(product)
    db.commit()
    return product, product.variants[0], product.variants[1]


@pytest.fixture
def count_rows(db):
    def _count(model) -> int:
        db.expire_all()
        return db.scalar(select(func.count()).select_from(model))

    return _count
