# conftest.py - pytest config for the Django test suite

import os
import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "retail_erp.settings.local")


# Apps ship without migrations: build tables straight from the models
@pytest.fixture(scope="session")
def django_db_use_migrations():
    return False


@pytest.fixture(scope="session")
def django_db_keepdb():
    return False


@pytest.fixture(autouse=True)
def _test_settings(settings):
    settings.ALLOWED_HOSTS = ["*", "testserver", "localhost", "127.0.0.1"]
    settings.STOCK_DEFAULT_TENANT = "restaurant"
    settings.STOCK_CENTRAL_SECTOR_NAME = "Central Warehouse"
