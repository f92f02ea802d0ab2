import json
import os
from datetime import datetime
from unittest import mock

import pytest

os.environ["TESTING"] = "1"

from dental_appointments.core.storage import FileStorage, MemoryStorage, StorageReadError, StorageWriteError
from dental_appointments.models.appointment import Appointment
from dental_appointments.services.repository import AppointmentNotFound, AppointmentRepository, to_record

KEY = "davanteDentCitas"

def make_appointment(appointment_id="", scheduled_at="2030-06-03T10:00", **overrides):
    data = {
        "appointment_id": appointment_id,
        "scheduled_at": datetime.fromisoformat(scheduled_at),
        "notes": "Revisión anual",
        "first_name": "Ana",
        "last_name": "García",
        "national_id": "12345678A",
        "phone": "123456789",
        "date_of_birth": "1990-04-12",
    }
    data.update(overrides)
    return Appointment(**data)

@pytest.fixture
def storage():
    return MemoryStorage()

@pytest.fixture
def repository(storage):
    return AppointmentRepository(storage, key=KEY)

class TestLoadAll:

    def test_empty_storage(self, repository):
        """Test that no stored data means no appointments."""
        assert repository.load_all() == []

    @pytest.mark.parametrize("raw", ["{not json", "{}", "42", '[{"citaId": "1"}]', "[1, 2]"])
    def test_corrupt_data_degrades_to_empty(self, storage, repository, raw):
        """Test that corrupt data is treated as an empty collection."""
        storage.set(KEY, raw)
        assert repository.load_all() == []

    def test_read_error_degrades_to_empty(self, storage, repository):
        """Test that a failing medium is treated as an empty collection."""
        with mock.patch.object(storage, "get", side_effect=StorageReadError("boom")):
            assert repository.load_all() == []

    def test_reads_legacy_records(self, storage, repository):
        """Test records written by the browser version of the app."""
        storage.set(KEY, json.dumps([{
            "citaId": "1717000000000",
            "fechaCita": "2030-06-03T10:00",
            "observaciones": "",
            "nombre": "Ana",
            "apellidos": "García",
            "dni": "12345678A",
            "telefono": "123456789",
            "fechaNacimiento": "1990-04-12",
        }]))
        [appointment] = repository.load_all()
        assert appointment.appointment_id == "1717000000000"
        assert appointment.scheduled_at == datetime(2030, 6, 3, 10, 0)
        assert appointment.first_name == "Ana"

    def test_offset_dates_load_as_local_time(self, storage, repository):
        """Test that a stored date with a UTC offset loads as naive local time."""
        aware = "2030-06-03T11:00+02:00"
        storage.set(KEY, json.dumps([
            to_record(make_appointment("1", "2030-06-03T10:00")),
            dict(to_record(make_appointment("2")), fechaCita=aware),
        ]))
        appointments = repository.load_all()
        assert [a.scheduled_at.tzinfo for a in appointments] == [None, None]
        assert appointments[1].scheduled_at == datetime.fromisoformat(aware).astimezone().replace(tzinfo=None)

    def test_unparseable_date_degrades_to_empty(self, storage, repository):
        """Test that a record with a broken date makes the collection unreadable."""
        storage.set(KEY, json.dumps([dict(to_record(make_appointment("1")), fechaCita="soon")]))
        assert repository.load_all() == []

    def test_idempotent(self, repository):
        """Test that loading twice without changes gives the same result."""
        repository.save_all([make_appointment("1"), make_appointment("2", "2030-06-03T10:30")])
        assert repository.load_all() == repository.load_all()

class TestSaveAll:

    def test_round_trip(self, repository):
        """Test that what is saved is what is loaded, in the same order."""
        appointments = [
            make_appointment("2", "2030-06-04T09:00"),
            make_appointment("1", "2030-06-03T10:00", notes=""),
            make_appointment("3", "2030-06-03T10:30:15"),
        ]
        repository.save_all(appointments)
        assert repository.load_all() == appointments

    def test_persisted_layout(self, storage, repository):
        """Test the stored keys and date format."""
        repository.save_all([make_appointment("1")])
        [record] = json.loads(storage.get(KEY))
        assert record == {
            "citaId": "1",
            "fechaCita": "2030-06-03T10:00",
            "observaciones": "Revisión anual",
            "nombre": "Ana",
            "apellidos": "García",
            "dni": "12345678A",
            "telefono": "123456789",
            "fechaNacimiento": "1990-04-12",
        }

    def test_write_failure_propagates(self, repository):
        """Test that a rejected write reaches the caller and nothing is stored."""
        repository.storage.read_only = True
        with pytest.raises(StorageWriteError):
            repository.save_all([make_appointment("1")])
        assert repository.load_all() == []

    def test_file_storage_round_trip(self, tmp_path):
        """Test the repository on top of file storage."""
        repository = AppointmentRepository(FileStorage(str(tmp_path)), key=KEY)
        repository.save_all([make_appointment("1")])
        assert AppointmentRepository(FileStorage(str(tmp_path)), key=KEY).load_all() == [make_appointment("1")]

class TestUpsert:

    def test_insert_mints_id(self, repository):
        """Test that a new appointment gets an id."""
        appointments = repository.upsert(make_appointment())
        assert len(appointments) == 1
        assert appointments[0].appointment_id
        assert appointments[0].appointment_id.isdigit()
        assert repository.load_all() == appointments

    def test_ids_are_unique(self, repository):
        """Test that rapid inserts never share an id."""
        with mock.patch("dental_appointments.services.repository.time.time", return_value=1700000000.0):
            for minute in range(0, 60, 30):
                for hour in range(8, 13):
                    repository.upsert(make_appointment(scheduled_at=f"2030-06-03T{hour:02d}:{minute:02d}"))
        ids = [a.appointment_id for a in repository.load_all()]
        assert len(ids) == 10
        assert len(set(ids)) == 10

    def test_update_replaces_fields_keeps_id(self, repository):
        """Test that an update replaces the record in place."""
        [created] = repository.upsert(make_appointment())
        [_, other] = repository.upsert(make_appointment(scheduled_at="2030-06-04T11:00"))
        edited = make_appointment(created.appointment_id, "2030-06-05T12:30", first_name="Lucía")

        appointments = repository.upsert(edited)
        assert len(appointments) == 2
        assert appointments[0] == edited
        assert appointments[1] == other
        assert repository.load_all()[0].first_name == "Lucía"

    def test_update_unknown_id(self, repository):
        """Test that updating an id that isn't stored fails and writes nothing."""
        with pytest.raises(AppointmentNotFound):
            repository.upsert(make_appointment("missing"))
        assert repository.storage.get(KEY) is None

class TestRemove:

    def test_remove(self, repository):
        """Test that remove deletes only the matching record."""
        repository.save_all([make_appointment("1"), make_appointment("2", "2030-06-03T10:30")])
        remaining = repository.remove("1")
        assert [a.appointment_id for a in remaining] == ["2"]
        assert repository.load_all() == remaining

    def test_remove_missing_is_noop(self, repository):
        """Test that removing an unknown id leaves the collection unchanged."""
        appointments = [make_appointment("1")]
        repository.save_all(appointments)
        assert repository.remove("missing") == appointments
        assert repository.load_all() == appointments

class TestGet:

    def test_get(self, repository):
        """Test looking up one appointment."""
        repository.save_all([make_appointment("1"), make_appointment("2", "2030-06-03T10:30")])
        assert repository.get("2").scheduled_at == datetime(2030, 6, 3, 10, 30)

    def test_get_missing(self, repository):
        """Test that an unknown id raises AppointmentNotFound."""
        with pytest.raises(AppointmentNotFound):
            repository.get("missing")
