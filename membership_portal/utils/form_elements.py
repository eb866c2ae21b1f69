"""
Headless model of a live form: the addressable elements a page renders and the
display labels shown next to file inputs.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

CHECKABLE_TYPES = ("checkbox", "radio")
TEXT_LIKE_TYPES = ("text", "email", "tel")


@dataclass
class FormElement:
    type: str = "text"
    name: Optional[str] = None
    id: Optional[str] = None
    value: str = ""
    checked: bool = False
    tag: str = "input"

    @property
    def key(self) -> Optional[str]:
        return self.name or self.id or None

    @property
    def is_checkable(self) -> bool:
        return self.type in CHECKABLE_TYPES

    @property
    def is_file(self) -> bool:
        return self.type == "file"


@dataclass
class LiveForm:
    form_id: str
    elements: List[FormElement] = field(default_factory=list)
    slot_labels: Dict[str, str] = field(default_factory=dict)

    def __iter__(self) -> Iterator[FormElement]:
        return iter(self.elements)

    def add(self, element: FormElement) -> FormElement:
        self.elements.append(element)
        return element

    def find(self, key: str) -> List[FormElement]:
        """All elements addressed by `key` (a radio group yields several)."""
        return [el for el in self.elements if el.key == key]

    def set_value(self, key: str, value: str):
        """Simulates user input: sets text value, or checks the matching checkable."""
        matches = self.find(key)
        if not matches:
            raise KeyError(key)
        for el in matches:
            if el.is_checkable:
                if el.type == "radio":
                    el.checked = el.value == value
                else:
                    el.checked = bool(value) and el.value == value
            elif not el.is_file:
                el.value = value

    def get_value(self, key: str) -> str:
        for el in self.find(key):
            if el.is_checkable:
                if el.checked:
                    return el.value
            elif not el.is_file:
                return el.value
        return ""
