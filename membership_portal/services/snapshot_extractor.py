from typing import Dict, Iterable
from membership_portal.api.schemas import FileAttachmentRef, FormSnapshot
from membership_portal.utils.form_elements import LiveForm


def extract_fields(form: LiveForm) -> Dict[str, str]:
    """
    Reads the current value of every addressable element into a plain map.

    Values are kept verbatim. Checkbox/radio groups store the checked value,
    or "" when nothing in the group is checked. File inputs and elements with
    neither name nor id are skipped.
    """
    fields: Dict[str, str] = {}
    for element in form:
        key = element.key
        if not key or element.is_file:
            continue
        if element.is_checkable:
            if element.checked:
                fields[key] = element.value
            else:
                fields.setdefault(key, "")
        else:
            fields[key] = element.value
    return fields


def build_snapshot(form: LiveForm, attachments: Iterable[FileAttachmentRef], now_ms: int) -> FormSnapshot:
    return FormSnapshot(
        form_id=form.form_id,
        saved_at=now_ms,
        fields=extract_fields(form),
        attachments={ref.slot_name.value: ref for ref in attachments if ref.is_terminal},
    )
