import unittest
from unittest.mock import MagicMock
import pydantic
from sqlalchemy.exc import SQLAlchemyError
from membership_portal.api.schemas import AttachmentStatus, FileAttachmentRef, FileSlot, FormSnapshot
from membership_portal.core.errors import StorageError
from membership_portal.db.session import check_connection, init_db
from membership_portal.db.storage import MemoryStorage, SqlStorage
from membership_portal.services.persistence_store import STORAGE_KEY, PersistenceStore


def make_snapshot(form_id="registration", saved_at=1000, **fields):
    return FormSnapshot(form_id=form_id, saved_at=saved_at, fields=fields or {"firstName": "Asha"})


class TestPersistenceStore(unittest.TestCase):
    def setUp(self):
        self.storage = MemoryStorage()
        self.store = PersistenceStore(self.storage)

    def test_save_then_load(self):
        snapshot = make_snapshot(firstName="Asha", gender="female")
        self.assertTrue(self.store.save(snapshot))

        loaded = self.store.load("registration")
        self.assertEqual(loaded.fields, {"firstName": "Asha", "gender": "female"})
        self.assertEqual(loaded.saved_at, 1000)

    def test_payload_uses_wire_names(self):
        self.store.save(make_snapshot())
        raw = self.storage.get_item(STORAGE_KEY)
        self.assertIn('"formId":"registration"', raw)
        self.assertIn('"savedAt":1000', raw)

    def test_unparsable_payload_loads_as_absent(self):
        self.storage.set_item(STORAGE_KEY, "{not json at all")
        self.assertIsNone(self.store.load("registration"))

    def test_wrong_shape_payload_loads_as_absent(self):
        self.storage.set_item(STORAGE_KEY, '{"formId": "registration"}')
        self.assertIsNone(self.store.load("registration"))

    def test_form_id_mismatch_loads_as_absent(self):
        self.store.save(make_snapshot(form_id="update"))
        self.assertIsNone(self.store.load("registration"))
        self.assertIsNotNone(self.store.load("update"))

    def test_save_overwrites_snapshot_of_other_form(self):
        self.store.save(make_snapshot(form_id="update"))
        self.store.save(make_snapshot(form_id="registration", saved_at=2000))

        self.assertIsNone(self.store.load("update"))
        self.assertEqual(self.store.load("registration").saved_at, 2000)

    def test_quota_exceeded_is_a_noop(self):
        store = PersistenceStore(MemoryStorage(quota_bytes=20))
        self.assertFalse(store.save(make_snapshot()))
        self.assertIsNone(store.load("registration"))

    def test_uploading_attachment_is_not_persisted(self):
        snapshot = make_snapshot()
        snapshot.attachments = {
            "aadharFront": FileAttachmentRef(slot_name=FileSlot.ID_FRONT, status=AttachmentStatus.UPLOADING),
            "profilePhoto": FileAttachmentRef(slot_name=FileSlot.PROFILE_PHOTO, status=AttachmentStatus.UPLOADED,
                                              remote_reference="https://files.example/p.png"),
        }
        self.store.save(snapshot)

        loaded = self.store.load("registration")
        self.assertEqual(list(loaded.attachments), ["profilePhoto"])
        self.assertEqual(loaded.attachments["profilePhoto"].remote_reference, "https://files.example/p.png")

    def test_uploaded_attachment_requires_reference(self):
        with self.assertRaises(pydantic.ValidationError):
            FileAttachmentRef(slot_name=FileSlot.ID_BACK, status=AttachmentStatus.UPLOADED)

    def test_clear(self):
        self.store.save(make_snapshot())
        self.assertTrue(self.store.has_snapshot())
        self.store.clear()
        self.assertFalse(self.store.has_snapshot())
        self.assertIsNone(self.store.load("registration"))

    def test_storage_failures_never_raise(self):
        storage = MagicMock()
        storage.get_item.side_effect = StorageError("read failed")
        storage.set_item.side_effect = StorageError("write failed")
        storage.remove_item.side_effect = StorageError("remove failed")
        store = PersistenceStore(storage)

        self.assertFalse(store.save(make_snapshot()))
        self.assertIsNone(store.load("registration"))
        self.assertFalse(store.has_snapshot())
        store.clear()


class TestSqlStorage(unittest.TestCase):
    def setUp(self):
        init_db("sqlite://")
        self.storage = SqlStorage()

    def test_set_get_remove(self):
        self.assertIsNone(self.storage.get_item("k"))
        self.storage.set_item("k", "v1")
        self.storage.set_item("k", "v2")
        self.assertEqual(self.storage.get_item("k"), "v2")
        self.storage.remove_item("k")
        self.assertIsNone(self.storage.get_item("k"))

    def test_store_on_sql_storage(self):
        store = PersistenceStore(self.storage)
        store.save(make_snapshot(firstName="Ravi"))
        self.assertEqual(store.load("registration").fields["firstName"], "Ravi")

    def test_quota(self):
        storage = SqlStorage(quota_bytes=8)
        with self.assertRaises(StorageError):
            storage.set_item("key", "far too long")
        self.assertIsNone(storage.get_item("key"))

    def test_database_error_becomes_storage_error(self):
        mock_db = MagicMock()
        mock_db.merge.side_effect = SQLAlchemyError("disk I/O error")
        storage = SqlStorage(session_factory=lambda: mock_db)

        with self.assertRaises(StorageError):
            storage.set_item("k", "v")

        mock_db.rollback.assert_called_once()
        mock_db.close.assert_called_once()

    def test_check_connection(self):
        self.assertTrue(check_connection())


if __name__ == "__main__":
    unittest.main()
