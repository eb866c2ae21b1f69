from membership_portal.api.schemas import AttachmentStatus, FileAttachmentRef, FileSlot
from membership_portal.services.snapshot_extractor import build_snapshot, extract_fields
from membership_portal.utils.form_definitions import build_registration_form, build_update_form
from membership_portal.utils.form_elements import FormElement, LiveForm


def test_text_values_are_captured_verbatim():
    form = LiveForm("registration", [FormElement(name="firstName", value="  Asha ")])
    assert extract_fields(form) == {"firstName": "  Asha "}


def test_key_falls_back_to_id_and_unaddressable_elements_are_skipped():
    form = LiveForm("registration", [
        FormElement(id="declarationSignature", value="Asha K"),
        FormElement(type="button", tag="button", value="Next"),
    ])
    assert extract_fields(form) == {"declarationSignature": "Asha K"}


def test_file_inputs_are_never_captured():
    form = LiveForm("registration", [
        FormElement(type="file", name="aadharFront", value="C:\\fakepath\\front.png"),
        FormElement(name="firstName", value="Asha"),
    ])
    assert extract_fields(form) == {"firstName": "Asha"}


def test_radio_group_captures_checked_value_only():
    form = LiveForm("registration", [
        FormElement(type="radio", name="gender", value="male"),
        FormElement(type="radio", name="gender", value="female", checked=True),
        FormElement(type="radio", name="gender", value="other"),
    ])
    assert extract_fields(form) == {"gender": "female"}


def test_unchecked_group_and_checkbox_capture_empty_string():
    form = LiveForm("registration", [
        FormElement(type="radio", name="gender", value="male"),
        FormElement(type="radio", name="gender", value="female"),
        FormElement(type="checkbox", name="sameAsCurrent", value="on"),
    ])
    assert extract_fields(form) == {"gender": "", "sameAsCurrent": ""}


def test_empty_form_yields_empty_map():
    assert extract_fields(LiveForm("update")) == {}


def test_registration_form_capture_shape():
    form = build_registration_form()
    form.set_value("firstName", "Asha")
    form.set_value("gender", "female")

    fields = extract_fields(form)

    assert fields["firstName"] == "Asha"
    assert fields["gender"] == "female"
    assert fields["hasCasteCertificate"] == ""
    for slot in FileSlot:
        assert slot.value not in fields


def test_build_snapshot_keeps_only_terminal_attachments():
    form = build_update_form()
    uploading = FileAttachmentRef(slot_name=FileSlot.ID_FRONT, status=AttachmentStatus.UPLOADING)
    uploaded = FileAttachmentRef(slot_name=FileSlot.PROFILE_PHOTO, status=AttachmentStatus.UPLOADED,
                                 remote_reference="https://files.example/photo.png")
    failed = FileAttachmentRef(slot_name=FileSlot.ID_BACK, status=AttachmentStatus.FAILED)

    snapshot = build_snapshot(form, [uploading, uploaded, failed], 1234)

    assert snapshot.form_id == "update"
    assert snapshot.saved_at == 1234
    assert set(snapshot.attachments) == {"profilePhoto", "aadharBack"}
    assert "profilePhoto" not in snapshot.fields
