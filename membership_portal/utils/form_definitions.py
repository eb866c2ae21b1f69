from typing import List, Tuple
from membership_portal.api.schemas import FileSlot, FormId
from membership_portal.utils.form_elements import FormElement, LiveForm

NO_FILE_LABEL = "No file selected"

# (key, type) pairs
PERSONAL_FIELDS: List[Tuple[str, str]] = [
    ("firstName", "text"),
    ("middleName", "text"),
    ("lastName", "text"),
    ("fatherName", "text"),
    ("motherName", "text"),
    ("dob", "date"),
    ("age", "number"),
]

CONTACT_FIELDS: List[Tuple[str, str]] = [
    ("primaryMobile", "tel"),
    ("alternateMobile", "tel"),
    ("primaryEmail", "email"),
    ("emergencyName", "text"),
    ("emergencyRelationship", "text"),
    ("emergencyMobile", "tel"),
]

ADDRESS_FIELDS: List[Tuple[str, str]] = [
    ("currentAddress", "textarea"),
    ("currentCity", "text"),
    ("currentState", "text"),
    ("currentPincode", "text"),
    ("currentCountry", "text"),
    ("permanentAddress", "textarea"),
    ("permanentCity", "text"),
    ("permanentState", "text"),
    ("permanentPincode", "text"),
    ("permanentCountry", "text"),
]

COMMUNITY_FIELDS: List[Tuple[str, str]] = [
    ("gothra", "text"),
    ("kuldevi", "text"),
    ("kuldevata", "text"),
    ("veda", "text"),
    ("vamsha", "text"),
    ("caste", "text"),
    ("aadharNumber", "text"),
]

GENDER_OPTIONS = ("male", "female", "other")

REGISTRATION_SLOTS = (FileSlot.ID_FRONT, FileSlot.ID_BACK, FileSlot.PROFILE_PHOTO, FileSlot.CERTIFICATE)
UPDATE_SLOTS = (FileSlot.ID_FRONT, FileSlot.ID_BACK, FileSlot.PROFILE_PHOTO)


def _element(key: str, kind: str) -> FormElement:
    if kind == "textarea":
        return FormElement(type="textarea", tag="textarea", name=key, id=key)
    return FormElement(type=kind, name=key, id=key)


def _file_inputs(form: LiveForm, slots):
    for slot in slots:
        form.add(FormElement(type="file", name=slot.value, id=slot.value))
        form.slot_labels[slot.value] = NO_FILE_LABEL


def build_registration_form() -> LiveForm:
    form = LiveForm(form_id=FormId.REGISTRATION.value)
    for key, kind in PERSONAL_FIELDS + CONTACT_FIELDS + ADDRESS_FIELDS + COMMUNITY_FIELDS:
        form.add(_element(key, kind))
    for option in GENDER_OPTIONS:
        form.add(FormElement(type="radio", name="gender", id=f"gender_{option}", value=option))
    form.add(FormElement(type="checkbox", name="sameAsCurrent", id="sameAsCurrent", value="on"))
    for option in ("yes", "no"):
        form.add(FormElement(type="radio", name="hasCasteCertificate", value=option))
    form.add(FormElement(type="text", id="declarationSignature"))
    form.add(FormElement(type="date", id="declarationDate"))
    form.add(FormElement(type="checkbox", name="termsAccepted", id="termsAccepted", value="yes"))
    _file_inputs(form, REGISTRATION_SLOTS)
    # Buttons carry neither name nor id
    form.add(FormElement(type="button", tag="button", value="Next"))
    return form


def build_update_form() -> LiveForm:
    form = LiveForm(form_id=FormId.UPDATE.value)
    form.add(FormElement(type="hidden", name="uniqueId", id="uniqueId"))
    for key, kind in PERSONAL_FIELDS[:5] + CONTACT_FIELDS + ADDRESS_FIELDS:
        form.add(_element(key, kind))
    form.add(FormElement(type="checkbox", name="sameAsCurrent", id="updateSameAsCurrent", value="on"))
    _file_inputs(form, UPDATE_SLOTS)
    return form


def build_live_form(form_id: str) -> LiveForm:
    if form_id == FormId.REGISTRATION.value:
        return build_registration_form()
    if form_id == FormId.UPDATE.value:
        return build_update_form()
    raise ValueError(f"Unknown form id: {form_id}")
