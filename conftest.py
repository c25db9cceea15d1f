import os
import shutil
import tempfile
import pytest

# Create a temporary SQLite database file for the whole test session
_TEMP_DIR = tempfile.mkdtemp(prefix="compdesk_tests_")
_DB_FILE = os.path.join(_TEMP_DIR, "test_compdesk.db")
os.environ["COMPDESK_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ.setdefault("COMPDESK_LOG_LEVEL", "WARNING")


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Initialize a fresh temporary SQLite database for tests and clean it up after."""
    # Import after setting env var so the app uses the temp DB
    from compdesk.database import engine, init_db

    init_db()

    yield

    engine.dispose()
    shutil.rmtree(_TEMP_DIR, ignore_errors=True)


# Each test starts from an empty network so periods and distributors never leak between tests.
@pytest.fixture(autouse=True)
def _clean_network_tables():
    from compdesk import crud
    from compdesk.database import SessionLocal

    session = SessionLocal()
    try:
        crud.reset_network_data(session)
    finally:
        session.close()


@pytest.fixture
def test_db():
    """Provide a database session for each test with automatic rollback."""
    from compdesk.database import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
