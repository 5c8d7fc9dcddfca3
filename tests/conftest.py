import os

# app.core.users refuses to import without a secret
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BILLING_BACKEND", "memory")

from datetime import datetime

import pytest
from sqlalchemy import event, inspect
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app import models  # noqa: F401  (registers every table)
from app.core.constants import SYSTEM_ACTOR
from app.services.customer_service import CustomerService
from app.services.package_service import PackageService
from app.services.vc_inventory_service import VCInventoryService


def reject_naive_datetimes(session, flush_context, instances):
    """Timestamp columns only accept timezone-aware values."""
    for obj in list(session.new) + list(session.dirty):
        state = inspect(obj)
        for attr in state.mapper.column_attrs:
            if obj in session.new:
                values = [state.dict.get(attr.key)]
            else:
                values = state.attrs[attr.key].history.added
            for value in values:
                if isinstance(value, datetime) and value.tzinfo is None:
                    raise ValueError(
                        f"{type(obj).__name__}.{attr.key}: "
                        "Datetime values must have timezone information"
                    )


@pytest.fixture(autouse=True)
def aware_timestamps_only():
    event.listen(Session, "before_flush", reject_naive_datetimes)
    yield
    event.remove(Session, "before_flush", reject_naive_datetimes)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_package(session):
    service = PackageService(session)
    counter = {"n": 0}

    def _make(price=500.0, name=None):
        counter["n"] += 1
        return service.create_package(
            {"name": name or f"Package {counter['n']}", "price": price, "channels": 100}
        )

    return _make


@pytest.fixture
def make_customer(session):
    service = CustomerService(session)
    counter = {"n": 0}

    def _make(name=None, **fields):
        counter["n"] += 1
        data = {"name": name or f"Customer {counter['n']}", "collector_name": "North", **fields}
        return service.create_customer(data)

    return _make


@pytest.fixture
def make_vc(session):
    service = VCInventoryService(session)
    counter = {"n": 0}

    def _make(package=None, vc_number=None):
        counter["n"] += 1
        return service.create_vc_item(
            vc_number or f"VC9{counter['n']:05d}",
            package_id=package.id if package else None,
            package_name=package.name if package else None,
        )

    return _make


@pytest.fixture
def subscribed_customer(session, make_customer, make_package, make_vc):
    """A customer with one active VC on a 500/month package."""

    def _make(price=500.0, name=None):
        customer = make_customer(name=name)
        package = make_package(price=price)
        vc = make_vc(package)
        VCInventoryService(session).assign_vcs_to_customer(
            [vc.id], customer.id, customer.name, changed_by=SYSTEM_ACTOR
        )
        return customer

    return _make
