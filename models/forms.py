"""Form field bags for signup, signin and listing creation."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import ClassVar, Tuple


@dataclass(frozen=True, slots=True)
class FormField:
    name: str
    label: str
    kind: str = "text"

    @property
    def secret(self) -> bool:
        return self.kind == "password"


def clean_value(field: FormField, raw: str) -> str:
    """Apply the input-type checks a browser form would enforce."""
    value = raw if field.secret else raw.strip()
    if not value:
        raise ValueError(f"{field.label} is required")
    if field.kind == "email" and "@" not in value:
        raise ValueError("Please enter a valid email address")
    if field.kind == "number":
        if not value.isdecimal():
            raise ValueError(f"{field.label} must be a whole number")
        value = str(int(value))
    return value


class _FormMixin:
    __slots__ = ()

    FIELDS: ClassVar[Tuple[FormField, ...]] = ()

    def next_field(self) -> FormField | None:
        """First field that still has no value."""
        for field in self.FIELDS:
            if not getattr(self, field.name):
                return field
        return None

    def is_complete(self) -> bool:
        return self.next_field() is None

    def set_field(self, name: str, raw: str):
        field = next((f for f in self.FIELDS if f.name == name), None)
        if field is None:
            raise KeyError(name)
        return dataclasses.replace(self, **{name: clean_value(field, raw)})

    def cleared(self):
        """Copy with every text field emptied."""
        return dataclasses.replace(self, **{field.name: "" for field in self.FIELDS})

    def filled(self) -> Tuple[Tuple[FormField, str], ...]:
        return tuple(
            (field, getattr(self, field.name))
            for field in self.FIELDS
            if getattr(self, field.name)
        )


@dataclass(frozen=True, slots=True)
class SignupForm(_FormMixin):
    FIELDS: ClassVar[Tuple[FormField, ...]] = (
        FormField("name", "Name"),
        FormField("email", "Email", "email"),
        FormField("password", "Password", "password"),
    )

    name: str = ""
    email: str = ""
    password: str = ""


@dataclass(frozen=True, slots=True)
class SigninForm(_FormMixin):
    FIELDS: ClassVar[Tuple[FormField, ...]] = (
        FormField("email", "Email", "email"),
        FormField("password", "Password", "password"),
    )

    email: str = ""
    password: str = ""


@dataclass(frozen=True, slots=True)
class ListingForm(_FormMixin):
    """Create-listing form.

    ``image`` holds the uploaded bytes and ``preview_file_id`` the Telegram
    file id used to show the preview. Both are dropped together by
    :meth:`release_image`.
    """

    FIELDS: ClassVar[Tuple[FormField, ...]] = (
        FormField("name", "Name"),
        FormField("description", "Description"),
        FormField("payment_per_day", "Payment Per Day", "number"),
    )

    name: str = ""
    description: str = ""
    payment_per_day: str = ""
    image: bytes | None = dataclasses.field(default=None, repr=False)
    image_name: str | None = None
    preview_file_id: str | None = None

    @property
    def has_image(self) -> bool:
        return self.image is not None

    def attach_image(
        self,
        data: bytes,
        filename: str,
        preview_file_id: str | None = None,
    ) -> "ListingForm":
        """Return a form holding the new image; any previous one is superseded."""
        return dataclasses.replace(
            self.release_image(),
            image=data,
            image_name=filename,
            preview_file_id=preview_file_id,
        )

    def release_image(self) -> "ListingForm":
        return dataclasses.replace(self, image=None, image_name=None, preview_file_id=None)
