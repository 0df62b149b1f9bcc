import pytest

from policybrief.storage.database import Database
from tests.helpers import NOW


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "test.db"))
    yield database
    database.close()
