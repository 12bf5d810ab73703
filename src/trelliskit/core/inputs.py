"""
User input definitions collected by the viewer alongside each panel.

Inputs let viewers record feedback per panel (a radio choice, free text, a rank). The
display specification lists them under "inputs"; the viewer owns collecting the answers.

Serialized key order follows the viewer's documents: type-specific fields first, then
type, active, label, name.

Examples:
    >>> from trelliskit.core.inputs import CheckboxInput
    >>> CheckboxInput(name="good", label="Is it good?", options=["no", "yes"]).as_json()
    '{"options":["no","yes"],"type":"checkbox","active":true,"label":"Is it good?","name":"good"}'
"""

from __future__ import annotations

import json
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

__all__ = [
    "RadioInput",
    "CheckboxInput",
    "SelectInput",
    "MultiselectInput",
    "TextInput",
    "NumberInput",
    "Input",
]


class _InputBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    input_type: ClassVar[str] = ""
    json_fields: ClassVar[tuple[str, ...]] = ()

    name: str
    label: str
    active: bool = True

    @field_validator("name", "label", mode="before")
    @classmethod
    def _scalar_string(cls, v: Any, info: ValidationInfo) -> Any:
        if not isinstance(v, str):
            raise ValueError(f"{info.field_name} must be a scalar string")
        return v

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {f: _plain(getattr(self, f)) for f in self.json_fields}
        out.update(type=self.input_type, active=self.active, label=self.label, name=self.name)
        return out

    def as_json(self, pretty: bool = False) -> str:
        if pretty:
            return json.dumps(self.as_dict(), indent=2, ensure_ascii=False)
        return json.dumps(self.as_dict(), separators=(",", ":"), ensure_ascii=False)


def _plain(v: Any) -> Any:
    return list(v) if isinstance(v, tuple) else v


class _OptionsInput(_InputBase):
    json_fields: ClassVar[tuple[str, ...]] = ("options",)

    options: tuple[str, ...]

    @field_validator("options", mode="before")
    @classmethod
    def _non_empty(cls, v: Any) -> Any:
        if v is None or isinstance(v, str) or len(v) == 0:
            raise ValueError("options must be a list of strings with at least one element")
        return tuple(str(o) for o in v)


class RadioInput(_OptionsInput):
    input_type: ClassVar[str] = "radio"


class CheckboxInput(_OptionsInput):
    input_type: ClassVar[str] = "checkbox"


class SelectInput(_OptionsInput):
    input_type: ClassVar[str] = "select"


class MultiselectInput(_OptionsInput):
    input_type: ClassVar[str] = "multiselect"


class TextInput(_InputBase):
    """
    Free-text input.

    `height` is the number of text rows shown. `width` is accepted for layout hints but
    the viewer sizes the box itself, so it is not serialized.
    """

    input_type: ClassVar[str] = "text"
    json_fields: ClassVar[tuple[str, ...]] = ("height",)

    width: int | None = None
    height: int = 3

    @field_validator("width", "height", mode="before")
    @classmethod
    def _integer(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None and info.field_name == "width":
            return v
        if isinstance(v, bool) or not isinstance(v, int) or v < 1:
            raise ValueError(f"{info.field_name} must be an integer >= 1")
        return v


class NumberInput(_InputBase):
    input_type: ClassVar[str] = "number"
    json_fields: ClassVar[tuple[str, ...]] = ("max", "min")

    min: float | None = None
    max: float | None = None


Input = RadioInput | CheckboxInput | SelectInput | MultiselectInput | TextInput | NumberInput
