"""Pytest fixtures for micasa tests.

Every test gets its own on-disk database and document cache under tmp_path,
and the XDG / MICASA_* environment is pointed at tmp_path so nothing reads
or writes the real user directories.
"""

from datetime import date

import pytest

from micasa.core import Store
from micasa.core.models import (
    NewAppliance,
    NewMaintenanceItem,
    NewProject,
    NewQuote,
    NewVendor,
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Redirect per-user directories and drop MICASA_* overrides."""
    for var in ("MICASA_DB_PATH", "MICASA_CONFIG_PATH", "MICASA_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    yield


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def store(tmp_path, cache_dir):
    """A bootstrapped store on a fresh database file."""
    store = Store.open(tmp_path / "micasa.db", cache_dir=cache_dir)
    store.bootstrap()
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def project_type_id(store):
    return store.lookups.project_type_by_name("Roof").id


@pytest.fixture
def category_id(store):
    return store.lookups.maintenance_category_by_name("HVAC").id


@pytest.fixture
def project_id(store, project_type_id):
    return store.projects.create(NewProject(
        title="Replace roof",
        project_type_id=project_type_id,
        budget_cents=1_500_000,
    ))


@pytest.fixture
def vendor_id(store):
    return store.vendors.create(NewVendor(name="Acme Roofing", phone="555-0100"))


@pytest.fixture
def quote_id(store, project_id, vendor_id):
    return store.quotes.create(NewQuote(
        project_id=project_id,
        vendor_id=vendor_id,
        total_cents=1_250_000,
    ))


@pytest.fixture
def appliance_id(store):
    return store.appliances.create(NewAppliance(
        name="Furnace",
        brand="Carrier",
        warranty_expiry=date(2030, 1, 1),
    ))


@pytest.fixture
def maintenance_id(store, category_id, appliance_id):
    return store.maintenance.create(NewMaintenanceItem(
        name="Replace furnace filter",
        category_id=category_id,
        interval_months=3,
        appliance_id=appliance_id,
    ))
