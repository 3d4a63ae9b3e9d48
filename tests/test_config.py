from transfer_ledger.config import Settings
from transfer_ledger.errors import ErrorKind
from transfer_ledger.main import status_for


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://ledger@db/ledger")
    monkeypatch.setenv("TRANSFER_TIMEOUT_SECONDS", "0")
    settings = Settings()
    assert settings.database_url == "postgresql+asyncpg://ledger@db/ledger"
    assert settings.transfer_timeout_seconds == 0


def test_every_error_kind_has_a_status():
    for kind in ErrorKind:
        status = status_for(kind)
        assert (400 <= status < 500) == kind.client_fault
        assert kind.message
