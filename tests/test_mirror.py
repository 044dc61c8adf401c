"""Tests for LocalStorage and the LocalBackupMirror."""

import json
import logging

from audit_wizard.storage.local import LocalStorage

from conftest import BACKUP_KEY


class TestLocalStorage:
    def test_write_read_remove(self, local_storage):
        local_storage.write("k", "value")
        assert local_storage.read("k") == "value"
        local_storage.remove("k")
        assert local_storage.read("k") is None

    def test_missing_key_reads_none(self, local_storage):
        assert local_storage.read("nope") is None

    def test_remove_missing_key_is_noop(self, local_storage):
        local_storage.remove("nope")

    def test_overwrite_is_last_write_wins(self, local_storage):
        local_storage.write("k", "one")
        local_storage.write("k", "two")
        assert local_storage.read("k") == "two"

    def test_survives_new_instance(self, tmp_path):
        LocalStorage(tmp_path).write("k", "persisted")
        assert LocalStorage(tmp_path).read("k") == "persisted"

    def test_unsafe_key_stays_inside_directory(self, local_storage):
        local_storage.write("../escape", "x")
        assert local_storage.read("../escape") == "x"
        assert all(p.parent == local_storage.directory for p in local_storage.directory.iterdir())


class TestLocalBackupMirror:
    def test_mirror_writes_full_state(self, mirror, local_storage):
        state = {1: {"companyName": "Acme"}, 10: {"reportPreferences": ["Executive-level summary"]}}
        assert mirror.mirror(state) is True
        assert json.loads(local_storage.read(BACKUP_KEY)) == {
            "1": {"companyName": "Acme"},
            "10": {"reportPreferences": ["Executive-level summary"]},
        }

    def test_empty_state_not_written(self, mirror, local_storage):
        assert mirror.mirror({}) is False
        assert local_storage.read(BACKUP_KEY) is None

    def test_empty_state_keeps_previous_backup(self, mirror, acme_state):
        mirror.mirror(acme_state)
        mirror.mirror({})
        assert mirror.load() == acme_state

    def test_load_restores_int_step_keys(self, mirror, acme_state):
        mirror.mirror(acme_state)
        assert mirror.load() == {1: {"companyName": "Acme"}}

    def test_load_absent_returns_none(self, mirror):
        assert mirror.load() is None

    def test_load_empty_object_returns_none(self, mirror, local_storage):
        local_storage.write(BACKUP_KEY, "{}")
        assert mirror.load() is None

    def test_corrupt_backup_logged_and_treated_as_absent(self, mirror, local_storage, caplog):
        local_storage.write(BACKUP_KEY, "{not json")
        with caplog.at_level(logging.ERROR):
            assert mirror.load() is None
        assert "Failed to load backup data" in caplog.text

    def test_non_object_backup_treated_as_absent(self, mirror, local_storage):
        local_storage.write(BACKUP_KEY, "[1, 2]")
        assert mirror.load() is None

    def test_bad_step_key_treated_as_absent(self, mirror, local_storage):
        local_storage.write(BACKUP_KEY, '{"step-one": {"companyName": "Acme"}}')
        assert mirror.load() is None

    def test_clear(self, mirror, local_storage, acme_state):
        mirror.mirror(acme_state)
        mirror.clear()
        assert local_storage.read(BACKUP_KEY) is None

    def test_undecodable_backup_treated_as_absent(self, mirror, local_storage, caplog):
        path = local_storage.directory / f"{BACKUP_KEY}.json"
        path.write_bytes(b'{"1": {"companyName": "\xff\xfe"}}')
        with caplog.at_level(logging.ERROR):
            assert mirror.load() is None
        assert "Failed to load backup data" in caplog.text
