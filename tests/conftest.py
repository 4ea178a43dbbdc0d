import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.db.database import Base, build_engine, get_db
from app.main import app as fastapi_app
from app.models.inventory import Shop
from app.services.distribution import ShopRef


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def make_shop(db):
    def _make(code: str, name: str, is_active: bool = True) -> Shop:
        shop = Shop(code=code, name=name, is_active=is_active)
        db.add(shop)
        db.commit()
        db.refresh(shop)
        return shop

    return _make


@pytest.fixture()
def three_shops():
    return (
        ShopRef(id="A", name="Alpha"),
        ShopRef(id="B", name="Bravo"),
        ShopRef(id="C", name="Charlie"),
    )
