"""
Тесты для инфраструктурного слоя: хранилища, шина событий, логгер, снимок.
"""
import json
import logging

import pytest
from conftest import make_room

from novastay.infrastructure import (
    InMemoryDocumentStore,
    InMemoryEventBus,
    JsonFileDocumentStore,
    StdLibLogger,
    audit_log_handler,
)
from novastay.interfaces import BOOKINGS, ROOMS, IDocumentStore, ISupportsConditionalCreate
from novastay.rooms.domain import RoomStatusAdvanced, HousekeepingStatus
from novastay.shared_kernel import DomainEvent, OverlapError, PersistenceError
from novastay.snapshot import HotelSnapshot


class TestInMemoryDocumentStore:
    """Тесты хранилища документов в памяти."""

    def test_implements_ports(self):
        store = InMemoryDocumentStore()

        assert isinstance(store, IDocumentStore)
        assert isinstance(store, ISupportsConditionalCreate)

    def test_subscribe_delivers_current_snapshot(self):
        store = InMemoryDocumentStore()
        store.create(ROOMS, "101", {"number": "101"})
        received = []

        store.subscribe(ROOMS, received.append)

        assert received == [[{"number": "101", "id": "101"}]]

    def test_every_commit_is_broadcast(self):
        store = InMemoryDocumentStore()
        received = []
        store.subscribe(ROOMS, received.append)

        store.create(ROOMS, "101", {"number": "101"})
        store.update(ROOMS, "101", {"status": "DIRTY"})
        store.delete(ROOMS, "101")

        assert received == [
            [],
            [{"number": "101", "id": "101"}],
            [{"number": "101", "id": "101", "status": "DIRTY"}],
            [],
        ]

    def test_unsubscribe(self):
        store = InMemoryDocumentStore()
        received = []
        unsubscribe = store.subscribe(ROOMS, received.append)

        unsubscribe()
        store.create(ROOMS, "101", {})

        assert received == [[]]

    def test_update_is_partial(self):
        store = InMemoryDocumentStore()
        store.create(BOOKINGS, "b1", {"notes": "a", "adults": 1})

        store.update(BOOKINGS, "b1", {"notes": "b"})

        assert store.documents(BOOKINGS) == [{"notes": "b", "adults": 1, "id": "b1"}]

    def test_missing_and_duplicate_documents(self):
        store = InMemoryDocumentStore()
        store.create(BOOKINGS, "b1", {})

        with pytest.raises(PersistenceError):
            store.create(BOOKINGS, "b1", {})
        with pytest.raises(PersistenceError):
            store.update(BOOKINGS, "missing", {})
        with pytest.raises(PersistenceError):
            store.delete(BOOKINGS, "missing")

    def test_documents_are_copies(self):
        store = InMemoryDocumentStore()
        store.create(ROOMS, "101", {"amenities": ["Wifi"]})

        store.documents(ROOMS)[0]["amenities"].append("TV")

        assert store.documents(ROOMS)[0]["amenities"] == ["Wifi"]

    def test_create_if_guard_rejects(self):
        store = InMemoryDocumentStore()
        store.create(BOOKINGS, "b1", {})

        def guard(documents):
            raise OverlapError("Номер занят", [doc["id"] for doc in documents])

        with pytest.raises(OverlapError):
            store.create_if(BOOKINGS, "b2", {}, guard)

        assert [doc["id"] for doc in store.documents(BOOKINGS)] == ["b1"]

    def test_writes_from_listener_are_delivered_in_order(self):
        """Запись из обработчика рассылается после текущего круга."""
        store = InMemoryDocumentStore()
        seen = []

        def writer(documents):
            if not documents:
                return
            if len(documents) < 3:
                store.create(ROOMS, str(len(documents) + 1), {})

        def observer(documents):
            seen.append(len(documents))

        store.subscribe(ROOMS, writer)
        store.subscribe(ROOMS, observer)

        store.create(ROOMS, "1", {})

        assert seen == [0, 1, 2, 3]

    def test_listener_error_is_logged(self, caplog):
        store = InMemoryDocumentStore(StdLibLogger("novastay.tests.store"))
        received = []

        def broken(documents):
            raise RuntimeError("boom")

        store.subscribe(ROOMS, broken)
        store.subscribe(ROOMS, received.append)

        with caplog.at_level(logging.ERROR, logger="novastay.tests.store"):
            store.create(ROOMS, "101", {})

        assert len(received) == 2
        assert "boom" in caplog.text


class TestJsonFileDocumentStore:
    """Тесты хранилища с сохранением в JSON-файлы."""

    def test_persists_and_reloads(self, tmp_path):
        store = JsonFileDocumentStore(tmp_path)
        store.create(ROOMS, "101", make_room("101").model_dump(mode="json"))
        store.update(ROOMS, "101", {"status": "DIRTY"})

        reloaded = JsonFileDocumentStore(tmp_path)
        snapshot = HotelSnapshot()
        snapshot.attach(reloaded)

        assert snapshot.rooms.get("101").status == HousekeepingStatus.DIRTY
        saved = json.loads((tmp_path / "rooms.json").read_text(encoding="utf-8"))
        assert [item["id"] for item in saved] == ["101"]

    def test_delete_rewrites_file(self, tmp_path):
        store = JsonFileDocumentStore(tmp_path)
        store.create(BOOKINGS, "b1", {"notes": "x"})

        store.delete(BOOKINGS, "b1")

        assert json.loads((tmp_path / "bookings.json").read_text(encoding="utf-8")) == []
        assert not (tmp_path / "bookings.json.tmp").exists()

    def test_creates_missing_directory(self, tmp_path):
        data_dir = tmp_path / "nested" / "data"
        store = JsonFileDocumentStore(data_dir)

        store.create(ROOMS, "101", {})

        assert (data_dir / "rooms.json").exists()

    def test_corrupted_file(self, tmp_path):
        (tmp_path / "rooms.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            JsonFileDocumentStore(tmp_path)

    @pytest.mark.parametrize(
        "content",
        [
            '[{"number": "101"}]',
            "[1, 2]",
            '{"id": "101"}',
        ],
    )
    def test_malformed_items(self, tmp_path, content):
        """Документы без id или не-объекты дают PersistenceError, а не KeyError."""
        (tmp_path / "rooms.json").write_text(content, encoding="utf-8")

        with pytest.raises(PersistenceError):
            JsonFileDocumentStore(tmp_path)


class TestHotelSnapshot:
    """Тесты снимка состояния."""

    def test_invalid_document_is_skipped(self, caplog):
        """Некорректный документ пропускается, остальные попадают в снимок."""
        snapshot = HotelSnapshot(StdLibLogger("novastay.tests.snapshot"))

        snapshot.apply_rooms(
            [{"id": "999", "number": "999"}, make_room("101").model_dump(mode="json")]
        )

        assert [room.id for room in snapshot.rooms] == ["101"]
        assert snapshot.invalid_documents[ROOMS] == ["999"]
        assert "Invalid Room document skipped" in caplog.text

        snapshot.apply_rooms([make_room("101").model_dump(mode="json")])
        assert snapshot.invalid_documents[ROOMS] == []

    def test_change_listeners(self):
        snapshot = HotelSnapshot()
        versions = []
        unsubscribe = snapshot.on_change(lambda current: versions.append(current.version))

        snapshot.apply_rooms([make_room("101").model_dump(mode="json")])
        unsubscribe()
        snapshot.apply_bookings([])

        assert versions == [1]
        assert snapshot.rooms_loaded and snapshot.bookings_loaded
        assert snapshot.version == 2


class TestInMemoryEventBus:
    """Тесты шины событий."""

    def test_handlers_receive_subclass_events(self):
        bus = InMemoryEventBus()
        all_events, room_events = [], []
        bus.subscribe(DomainEvent, all_events.append)
        bus.subscribe(RoomStatusAdvanced, room_events.append)

        event = RoomStatusAdvanced(
            room_id="101",
            previous=HousekeepingStatus.CLEAN,
            current=HousekeepingStatus.DIRTY,
        )
        bus.publish(event)

        assert all_events == [event]
        assert room_events == [event]

    def test_handler_error_does_not_stop_others(self, caplog):
        bus = InMemoryEventBus(StdLibLogger("novastay.tests.events"))
        received = []

        def broken(event):
            raise RuntimeError("handler failed")

        bus.subscribe(DomainEvent, broken)
        bus.subscribe(DomainEvent, received.append)

        with caplog.at_level(logging.ERROR, logger="novastay.tests.events"):
            bus.publish(DomainEvent())

        assert len(received) == 1
        assert "handler failed" in caplog.text

    def test_audit_log_handler(self, caplog):
        handler = audit_log_handler(StdLibLogger("novastay.tests.audit"))

        with caplog.at_level(logging.INFO, logger="novastay.tests.audit"):
            handler(DomainEvent(actor="reception"))

        assert "Audit: DomainEvent" in caplog.text
        assert "reception" in caplog.text


class TestStdLibLogger:
    def test_context_is_appended_as_json(self, caplog):
        logger = StdLibLogger("novastay.tests.logger")

        with caplog.at_level(logging.INFO, logger="novastay.tests.logger"):
            logger.info("Booking created", booking_id="b1", room_id="101")

        assert 'Booking created | {"booking_id": "b1", "room_id": "101"}' in caplog.text

    def test_disabled_level_is_skipped(self, caplog):
        logger = StdLibLogger("novastay.tests.logger")

        with caplog.at_level(logging.INFO, logger="novastay.tests.logger"):
            logger.debug("hidden", value=1)

        assert "hidden" not in caplog.text
