"""Pydantic models describing the Leopard merchant API payloads."""

from __future__ import annotations

from typing import Final

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

SUCCESS_STATUS: Final[int] = 1
WEBHOOK_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _coerce_text(value: object) -> object:
    # Leopard sends some identifiers as JSON numbers.
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return _blank_to_none(value)


class LeopardBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LeopardEnvelope(LeopardBaseModel):
    """Fields every Leopard response carries next to its data."""

    status: int = 0
    error: object = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: object) -> object:
        if value is None or value == "":
            return 0
        return value

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS_STATUS

    @property
    def error_message(self) -> str:
        if isinstance(self.error, str) and self.error.strip():
            return self.error.strip()
        if isinstance(self.error, list) and self.error:
            return "; ".join(str(item) for item in self.error)
        return "Leopard API reported a failure without a message"


class TrackingDetailPayload(LeopardBaseModel):
    status: str | None = Field(default=None, alias="Status")
    activity_date: str | None = Field(
        default=None,
        validation_alias=AliasChoices("Activity_Date", "Activity_datetime", "activity_date"),
    )
    activity_time: str | None = Field(default=None, alias="Activity_Time")
    reason: str | None = Field(default=None, alias="Reason")

    _normalize_text = field_validator(
        "status", "activity_date", "activity_time", "reason", mode="before"
    )(_coerce_text)


class PacketPayload(LeopardBaseModel):
    track_number: str | None = None
    booked_packet_status: str | None = None
    booked_packet_order_id: str | None = None
    destination_city_name: str | None = None
    tracking_detail: list[TrackingDetailPayload] = Field(
        default_factory=list[TrackingDetailPayload],
        alias="Tracking Detail",
    )

    _normalize_text = field_validator(
        "track_number",
        "booked_packet_status",
        "booked_packet_order_id",
        "destination_city_name",
        mode="before",
    )(_coerce_text)

    @field_validator("tracking_detail", mode="before")
    @classmethod
    def _null_detail_to_empty(cls, value: object) -> object:
        return [] if value is None or value == "" else value


class TrackResponse(LeopardEnvelope):
    packet_list: list[PacketPayload] = Field(default_factory=list[PacketPayload])

    @field_validator("packet_list", mode="before")
    @classmethod
    def _null_list_to_empty(cls, value: object) -> object:
        return [] if value is None or value == "" else value


class CityPayload(LeopardBaseModel):
    id: int
    name: str = Field(validation_alias=AliasChoices("name", "city"))

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class CityListResponse(LeopardEnvelope):
    city_list: list[CityPayload] = Field(default_factory=list[CityPayload])


class WebhookEntry(LeopardBaseModel):
    cn_number: str
    status: str
    activity_date: str
    receiver_name: str | None = None
    reason: str | None = None

    @field_validator("cn_number", "status", mode="after")
    @classmethod
    def _require_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class WebhookPayload(LeopardBaseModel):
    data: list[WebhookEntry]
