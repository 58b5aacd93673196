"""
Tests for storage backends and the flat-file store format
"""

import logging
import pytest
from decimal import Decimal
from pathlib import Path

from atm_ledger.storage import (
    AccountRecord, FlatFileStorage, InMemoryStorage, StorageInterface
)


class TestAccountRecord:
    """Test the name;pin;balance line codec"""

    def test_to_line(self):
        record = AccountRecord(name="alice", pin="1234", balance=Decimal("70.0"))
        assert record.to_line() == "alice;1234;70.0"

    def test_from_line(self):
        record = AccountRecord.from_line("bob;0000;30.5\n")
        assert record == AccountRecord(name="bob", pin="0000", balance=Decimal("30.5"))

    def test_from_line_accepts_java_style_doubles(self):
        """Balances written as 100.0 or 1.5E2 parse as numbers"""
        assert AccountRecord.from_line("a;1111;100.0").balance == Decimal("100")
        assert AccountRecord.from_line("a;1111;1.5E2").balance == Decimal("150")

    @pytest.mark.parametrize("line", [
        "",
        "alice;1234",
        "alice;1234;10;extra",
        "alice;12a4;10",
        ";1234;10",
        "alice;1234;lots",
        "alice;1234;-5",
        "alice;1234;NaN",
        "alice;1234;Infinity",
        "alice;1234;1e1000000",
        "alice;1234;0.000000001",
    ])
    def test_malformed_lines(self, line):
        assert AccountRecord.from_line(line) is None


class TestInMemoryStorage:
    """Test the in-memory backend"""

    def test_save_and_load(self):
        storage = InMemoryStorage()
        assert isinstance(storage, StorageInterface)
        assert storage.load_all() == []

        records = [AccountRecord("alice", "1234", Decimal("1.0"))]
        storage.save_all(records)

        assert storage.load_all() == records
        assert storage.save_count == 1

    def test_save_replaces_snapshot(self):
        storage = InMemoryStorage([AccountRecord("alice", "1234", Decimal("1.0"))])
        storage.save_all([AccountRecord("bob", "0000", Decimal("2.0"))])

        assert [r.name for r in storage.load_all()] == ["bob"]


class TestFlatFileStorage:
    """Test the flat-file backend"""

    def test_missing_file_is_empty(self, tmp_path):
        storage = FlatFileStorage(tmp_path / "users.txt")
        assert storage.load_all() == []

    def test_default_path(self):
        assert FlatFileStorage().path == Path("users.txt")

    def test_save_writes_one_line_per_account(self, tmp_path):
        path = tmp_path / "users.txt"
        storage = FlatFileStorage(path)
        storage.save_all([
            AccountRecord("alice", "1234", Decimal("70.0")),
            AccountRecord("bob", "0000", Decimal("30.0")),
        ])

        lines = path.read_text(encoding="utf-8").splitlines()
        assert sorted(lines) == ["alice;1234;70.0", "bob;0000;30.0"]

    def test_save_overwrites(self, tmp_path):
        """Each save is a full snapshot, not an append"""
        path = tmp_path / "users.txt"
        storage = FlatFileStorage(path)
        storage.save_all([AccountRecord("alice", "1234", Decimal("1.0"))])
        storage.save_all([AccountRecord("bob", "0000", Decimal("2.0"))])

        assert path.read_text(encoding="utf-8") == "bob;0000;2.0\n"

    def test_save_leaves_no_temp_files(self, tmp_path):
        storage = FlatFileStorage(tmp_path / "users.txt")
        storage.save_all([AccountRecord("alice", "1234", Decimal("1.0"))])

        assert [p.name for p in tmp_path.iterdir()] == ["users.txt"]

    def test_round_trip(self, tmp_path):
        records = [
            AccountRecord("alice", "1234", Decimal("70.25")),
            AccountRecord("bob", "0000", Decimal("0.0")),
        ]
        FlatFileStorage(tmp_path / "users.txt").save_all(records)

        loaded = FlatFileStorage(tmp_path / "users.txt").load_all()
        assert sorted(loaded, key=lambda r: r.name) == records

    def test_malformed_lines_skipped(self, tmp_path):
        """A two-field line is skipped without error or partial account"""
        path = tmp_path / "users.txt"
        path.write_text("alice;1234;50.0\nbroken;1234\n\nbob;0000;5.0\n", encoding="utf-8")

        loaded = FlatFileStorage(path).load_all()

        assert [r.name for r in loaded] == ["alice", "bob"]

    def test_malformed_lines_logged_at_debug_only(self, tmp_path, caplog):
        path = tmp_path / "users.txt"
        path.write_text("broken;1234\n", encoding="utf-8")

        with caplog.at_level(logging.DEBUG, logger="atm.storage"):
            FlatFileStorage(path).load_all()

        skipped = [r for r in caplog.records if "malformed_record" in r.getMessage()]
        assert len(skipped) == 1
        assert skipped[0].levelno == logging.DEBUG

    def test_save_into_missing_directory_raises(self, tmp_path):
        storage = FlatFileStorage(tmp_path / "missing" / "users.txt")
        with pytest.raises(OSError):
            storage.save_all([AccountRecord("alice", "1234", Decimal("1.0"))])

    def test_invalid_utf8_line_skipped(self, tmp_path):
        """A line that is not UTF-8 is skipped like any other malformed line"""
        path = tmp_path / "users.txt"
        path.write_bytes(b"alice;1234;50.0\nbob;5678;20.0\n\xff\xfe;1111;1.0\ncarol;4321;7.5\n")

        loaded = FlatFileStorage(path).load_all()

        assert [(r.name, r.balance) for r in loaded] == [
            ("alice", Decimal("50.0")), ("bob", Decimal("20.0")), ("carol", Decimal("7.5")),
        ]

    def test_invalid_utf8_logged_at_debug(self, tmp_path, caplog):
        path = tmp_path / "users.txt"
        path.write_bytes(b"alice;1234;50.0\n\xff\xfe;1111;1.0\n")

        with caplog.at_level(logging.DEBUG, logger="atm.storage"):
            FlatFileStorage(path).load_all()

        assert any(f"{path}:2" in r.getMessage() for r in caplog.records if r.levelno == logging.DEBUG)
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

    def test_out_of_range_balance_skipped(self, tmp_path):
        path = tmp_path / "users.txt"
        path.write_text("alice;1234;1e1000000\nbob;5678;1e-1000000\ncarol;4321;2.0\n", encoding="utf-8")

        loaded = FlatFileStorage(path).load_all()

        assert [r.name for r in loaded] == ["carol"]

    def test_unreadable_store_logs_error(self, tmp_path, caplog):
        """A store path that cannot be read is logged and yields what was read"""
        directory = tmp_path / "users.txt"
        directory.mkdir()

        with caplog.at_level(logging.ERROR, logger="atm.storage"):
            assert FlatFileStorage(directory).load_all() == []

        assert any("Failed to read store" in r.getMessage() for r in caplog.records)

    def test_read_error_keeps_records_read_so_far(self, tmp_path, monkeypatch, caplog):
        path = tmp_path / "users.txt"
        path.write_text("placeholder\n", encoding="utf-8")

        class FailingHandle:
            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                return False

            def __iter__(self):
                yield b"alice;1234;50.0\n"
                yield b"bob;5678;20.0\n"
                raise OSError("I/O error")

        monkeypatch.setattr("atm_ledger.storage.open", lambda *args, **kwargs: FailingHandle(), raising=False)

        with caplog.at_level(logging.ERROR, logger="atm.storage"):
            loaded = FlatFileStorage(path).load_all()

        assert [r.name for r in loaded] == ["alice", "bob"]
        assert any("keeping 2 accounts" in r.getMessage() for r in caplog.records)
