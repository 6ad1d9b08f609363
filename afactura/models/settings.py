"""
Stored Settings

DESIGN DECISION: Settings are a tagged union keyed by `key` rather than
free-form key/value pairs. Every known setting kind has its own model,
so reading a setting back always yields a validated, typed value.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, PositiveInt, TypeAdapter

from afactura.models.invoice import CompanyProfile


class SettingKey(str, Enum):
    PROFILE = "profile"
    INVOICE_SERIES = "invoice_series"


class InvoiceNumbering(BaseModel):
    """
    Next document number of every series ever used.

    Switching back to an older series continues its numbering.
    """

    next_numbers: dict[str, PositiveInt] = Field(default_factory=dict)

    def next_for(self, series: str) -> int:
        return self.next_numbers.get(series, 1)

    def advanced(self, series: str) -> "InvoiceNumbering":
        return InvoiceNumbering(
            next_numbers={**self.next_numbers, series: self.next_for(series) + 1},
        )


class ProfileSetting(BaseModel):
    key: Literal["profile"] = "profile"
    value: CompanyProfile


class InvoiceSeriesSetting(BaseModel):
    key: Literal["invoice_series"] = "invoice_series"
    value: InvoiceNumbering = Field(default_factory=InvoiceNumbering)


Setting = Annotated[
    Union[ProfileSetting, InvoiceSeriesSetting],
    Field(discriminator="key"),
]

_setting_adapter: TypeAdapter[Setting] = TypeAdapter(Setting)


def parse_setting(record: dict) -> Setting:
    """
    Validate a raw settings record into its typed form.

    Raises pydantic.ValidationError for unknown keys or bad values.
    """
    return _setting_adapter.validate_python(record)


def setting_to_record(setting: Setting) -> dict:
    return setting.model_dump(mode="json")
