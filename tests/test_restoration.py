import pytest
from unittest.mock import MagicMock
from membership_portal.api.schemas import AttachmentStatus, FileAttachmentRef, FileSlot, FormSnapshot
from membership_portal.db.storage import MemoryStorage
from membership_portal.services.file_attachments import PREVIOUS_UPLOAD_LABEL
from membership_portal.services.notifier import NO_SESSION, RESTORED_SESSION, StatusIndicator
from membership_portal.services.persistence_store import STORAGE_KEY, PersistenceStore
from membership_portal.services.restoration import RestorationEngine, RestoreOutcome
from membership_portal.services.scheduler import ManualScheduler
from membership_portal.services.snapshot_extractor import build_snapshot, extract_fields
from membership_portal.utils.form_definitions import NO_FILE_LABEL, build_registration_form


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return PersistenceStore(storage)


@pytest.fixture
def indicator():
    return StatusIndicator(ManualScheduler(start=0.0))


def filled_form():
    form = build_registration_form()
    form.set_value("firstName", "Asha")
    form.set_value("lastName", "Kulkarni")
    form.set_value("primaryEmail", "asha@example.com")
    form.set_value("currentAddress", "12 Laxmi Road\nPune")
    form.set_value("gender", "female")
    form.set_value("sameAsCurrent", "on")
    form.set_value("hasCasteCertificate", "no")
    return form


def test_restore_round_trip(store, indicator):
    original = filled_form()
    before = extract_fields(original)
    store.save(build_snapshot(original, [], 1))

    fresh = build_registration_form()
    outcome = RestorationEngine(store, indicator).restore(fresh)

    assert outcome == RestoreOutcome.RESTORED
    assert extract_fields(fresh) == before
    assert indicator.messages == [RESTORED_SESSION]


def test_restore_never_overwrites_active_input(store, indicator):
    store.save(build_snapshot(filled_form(), [], 1))
    fresh = build_registration_form()
    fresh.set_value("primaryMobile", "9876543210")
    before = extract_fields(fresh)

    outcome = RestorationEngine(store, indicator).restore(fresh)

    assert outcome == RestoreOutcome.SKIPPED_CONFLICT
    assert extract_fields(fresh) == before
    assert indicator.history == []


def test_whitespace_only_input_is_not_a_conflict(store, indicator):
    store.save(build_snapshot(filled_form(), [], 1))
    fresh = build_registration_form()
    fresh.set_value("firstName", "   ")

    assert RestorationEngine(store, indicator).restore(fresh) == RestoreOutcome.RESTORED
    assert fresh.get_value("firstName") == "Asha"


def test_derived_signature_field_is_not_a_conflict(store, indicator):
    store.save(build_snapshot(filled_form(), [], 1))
    fresh = build_registration_form()
    fresh.set_value("declarationSignature", "Asha K")

    assert RestorationEngine(store, indicator).restore(fresh) == RestoreOutcome.RESTORED


def test_nothing_to_restore(store, indicator):
    fresh = build_registration_form()

    assert RestorationEngine(store, indicator).restore(fresh) == RestoreOutcome.NOTHING_TO_RESTORE
    assert indicator.messages == [NO_SESSION]


def test_snapshot_of_other_form_is_ignored(store, indicator):
    store.save(FormSnapshot(form_id="update", saved_at=1, fields={"firstName": "Ravi"}))
    fresh = build_registration_form()

    assert RestorationEngine(store, indicator).restore(fresh) == RestoreOutcome.NOTHING_TO_RESTORE
    assert fresh.get_value("firstName") == ""


def test_corrupt_snapshot_is_ignored(storage, store, indicator):
    storage.set_item(STORAGE_KEY, '{"formId": "registration", "savedAt": "yesterday"')

    assert RestorationEngine(store, indicator).restore(build_registration_form()) == RestoreOutcome.NOTHING_TO_RESTORE


def test_keys_missing_from_live_form_are_ignored(store, indicator):
    store.save(FormSnapshot(form_id="registration", saved_at=1,
                            fields={"firstName": "Asha", "legacyField": "x"}))
    fresh = build_registration_form()

    assert RestorationEngine(store, indicator).restore(fresh) == RestoreOutcome.RESTORED
    assert fresh.get_value("firstName") == "Asha"
    assert fresh.find("legacyField") == []


def test_uploaded_attachment_restores_label_only(store, indicator):
    uploaded = FileAttachmentRef(slot_name=FileSlot.PROFILE_PHOTO, status=AttachmentStatus.UPLOADED,
                                 remote_reference="https://files.example/photo.png", file_name="photo.png")
    failed = FileAttachmentRef(slot_name=FileSlot.ID_BACK, status=AttachmentStatus.FAILED, file_name="back.pdf")
    store.save(build_snapshot(filled_form(), [uploaded, failed], 1))
    tracker = MagicMock()
    fresh = build_registration_form()

    RestorationEngine(store, indicator, attachments=tracker).restore(fresh)

    assert fresh.slot_labels["profilePhoto"] == PREVIOUS_UPLOAD_LABEL
    assert fresh.slot_labels["aadharBack"] == NO_FILE_LABEL
    assert fresh.find("profilePhoto")[0].value == ""
    tracker.adopt.assert_called_once()
    assert tracker.adopt.call_args[0][0].remote_reference == "https://files.example/photo.png"
