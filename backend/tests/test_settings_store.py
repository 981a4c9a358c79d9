from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from dashboard.services import settings_store
from dashboard.services.settings_store import (
    SettingNotFound,
    SettingValidationError,
    SqlSettingsStore,
    StorageUnavailable,
)

USER = "default_user"


class FrozenClock:
    def __init__(self):
        self.current = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.current


@pytest.fixture()
def frozen_clock(monkeypatch):
    clock = FrozenClock()
    monkeypatch.setattr(settings_store, "utc_now", clock)
    return clock


def as_naive_utc(value):
    # SQLite hands timestamps back without an offset
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def test_list_is_empty_before_any_upsert(store):
    assert store.list(USER) == []


def test_upsert_creates_record(store):
    record = store.upsert(USER, "Claude AI", "sk-ant-abc123", {})

    assert record.id is not None
    assert record.user_id == USER
    assert record.service_name == "Claude AI"
    assert record.api_key == "sk-ant-abc123"
    assert record.additional_config == {}
    assert record.created_at == record.updated_at

    fetched = store.get(USER, "Claude AI")
    assert fetched.id == record.id
    assert fetched.api_key == "sk-ant-abc123"


def test_upsert_twice_updates_in_place(store, frozen_clock):
    first = store.upsert(USER, "Claude AI", "sk-ant-abc123", {"model": "claude-3"})

    frozen_clock.current = frozen_clock.current + timedelta(minutes=5)
    second = store.upsert(USER, "Claude AI", "sk-ant-xyz999", {"model": "claude-3-5", "beta": True})

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert as_naive_utc(second.updated_at) == datetime(2024, 1, 1, 12, 5, 0)
    assert second.api_key == "sk-ant-xyz999"
    assert second.additional_config == {"model": "claude-3-5", "beta": True}
    assert len(store.list(USER)) == 1


def test_upsert_defaults_missing_key_and_config(store):
    record = store.upsert(USER, "Ayrshare")

    assert record.api_key == ""
    assert record.additional_config == {}


@pytest.mark.parametrize("service_name", ["", "   ", None])
def test_upsert_rejects_blank_service_name(store, service_name):
    with pytest.raises(SettingValidationError) as excinfo:
        store.upsert(USER, service_name, "sk-ant-abc123")

    assert excinfo.value.message == "Service name is required"
    assert excinfo.value.status_code == 400
    assert store.list(USER) == []


def test_get_missing_service_raises_not_found(store):
    with pytest.raises(SettingNotFound) as excinfo:
        store.get(USER, "GPT-4")

    assert excinfo.value.service_name == "GPT-4"
    assert excinfo.value.status_code == 404


def test_delete_then_get_is_not_found(store):
    store.upsert(USER, "Claude AI", "sk-ant-abc123")
    store.delete(USER, "Claude AI")

    with pytest.raises(SettingNotFound):
        store.get(USER, "Claude AI")
    assert store.list(USER) == []


def test_delete_missing_service_is_a_noop(store):
    store.upsert(USER, "GPT-4", "sk-abc")

    store.delete(USER, "Claude AI")

    assert [s.service_name for s in store.list(USER)] == ["GPT-4"]


def test_records_are_scoped_by_user_and_case_sensitive(store):
    store.upsert(USER, "Instagram", "author.handle")
    store.upsert(USER, "instagram", "other.handle")
    store.upsert("someone_else", "Instagram", "their.handle")

    names = sorted(s.service_name for s in store.list(USER))
    assert names == ["Instagram", "instagram"]
    assert store.get(USER, "Instagram").api_key == "author.handle"
    assert store.get("someone_else", "Instagram").api_key == "their.handle"


def test_upsert_without_on_conflict_support_keeps_identity(store, monkeypatch):
    monkeypatch.setattr(SqlSettingsStore, "dialect", property(lambda self: "mssql"))

    first = store.upsert(USER, "Buffer", "token-1")
    second = store.upsert(USER, "Buffer", "token-2", {"profile": "main"})

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert second.api_key == "token-2"
    assert second.additional_config == {"profile": "main"}
    assert len(store.list(USER)) == 1


def test_missing_table_is_reported_as_storage_unavailable():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    store = SqlSettingsStore(engine)

    with pytest.raises(StorageUnavailable) as excinfo:
        store.list(USER)
    assert excinfo.value.status_code == 500

    with pytest.raises(StorageUnavailable):
        store.upsert(USER, "Claude AI", "sk-ant-abc123")

    with pytest.raises(StorageUnavailable):
        store.delete(USER, "Claude AI")


def test_corrupt_database_file_is_not_treated_as_empty(tmp_path):
    db_path = tmp_path / "settings.db"
    db_path.write_bytes(b"this is definitely not sqlite " * 200)
    engine = create_engine(f"sqlite:///{db_path}")
    store = SqlSettingsStore(engine)

    with pytest.raises(StorageUnavailable) as excinfo:
        store.list(USER)

    assert excinfo.value.message == "Settings database is corrupt"
    engine.dispose()


def test_malformed_stored_config_is_reported(store, engine):
    store.upsert(USER, "Hootsuite", "tok")
    with engine.begin() as conn:
        conn.execute(
            text("UPDATE user_settings SET additional_config = '{not json' WHERE service_name = 'Hootsuite'")
        )

    with pytest.raises(StorageUnavailable):
        store.list(USER)


def test_saved_timestamps_read_back_as_utc(store, frozen_clock):
    store.upsert(USER, "Claude AI", "sk-ant-abc123")

    fetched = store.get(USER, "Claude AI")
    assert as_naive_utc(fetched.created_at) == datetime(2024, 1, 1, 12, 0, 0)
    assert as_naive_utc(fetched.updated_at) == datetime(2024, 1, 1, 12, 0, 0)


def test_timestamps_are_set_without_on_conflict_support(store, monkeypatch):
    monkeypatch.setattr(SqlSettingsStore, "dialect", property(lambda self: "mssql"))
    before = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(seconds=5)

    first = store.upsert(USER, "Buffer", "token-1")
    second = store.upsert(USER, "Buffer", "token-2")

    assert as_naive_utc(first.created_at) >= before
    assert as_naive_utc(second.updated_at) >= as_naive_utc(first.updated_at)
