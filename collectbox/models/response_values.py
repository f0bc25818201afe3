"""Tagged union for stored response values.

A submission's `responses` map holds one of four value kinds per key. Values
are persisted as `{"kind": ..., "value": ...}` objects so attachment handles
are never confused with free text.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Dict, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from collectbox.logic.errors import InvalidRequest


class _Value(BaseModel):
    model_config = ConfigDict(frozen=True)


class Text(_Value):
    kind: Literal["text"] = "text"
    value: str


class Number(_Value):
    kind: Literal["number"] = "number"
    # inf/nan cannot be rendered back as JSON
    value: float = Field(allow_inf_nan=False)


class Flag(_Value):
    kind: Literal["flag"] = "flag"
    value: bool


class Attachment(_Value):
    kind: Literal["attachment"] = "attachment"
    value: str = Field(min_length=1)


ResponseValue = Annotated[Union[Text, Number, Flag, Attachment], Field(discriminator="kind")]

_VALUE_ADAPTER: TypeAdapter = TypeAdapter(ResponseValue)


def coerce_response_value(raw: Any) -> Text | Number | Flag | Attachment:
    """Build a ResponseValue from wire input.

    Plain JSON scalars map to Text/Number/Flag (bool is checked before
    number). Objects must carry a `kind`; attachments may name their handle
    `storage_id` as returned by the upload endpoint.
    """
    if isinstance(raw, (Text, Number, Flag, Attachment)):
        return raw
    if isinstance(raw, bool):
        return Flag(value=raw)
    if isinstance(raw, (int, float)):
        try:
            return Number(value=float(raw))
        except (OverflowError, ValidationError) as e:
            raise InvalidRequest("invalid response value: number must be finite") from e
    if isinstance(raw, str):
        return Text(value=raw)
    if isinstance(raw, Mapping):
        data = dict(raw)
        if data.get("kind") == "attachment" and "value" not in data and "storage_id" in data:
            data["value"] = data.pop("storage_id")
        try:
            return _VALUE_ADAPTER.validate_python(data)
        except OverflowError as e:
            raise InvalidRequest("invalid response value: number must be finite") from e
        except ValidationError as e:
            raise InvalidRequest(f"invalid response value: {e.errors()[0].get('msg', 'invalid')}") from e
    raise InvalidRequest(f"unsupported response value type: {type(raw).__name__}")


def coerce_responses(raw: Mapping[str, Any] | None) -> Dict[str, Text | Number | Flag | Attachment]:
    return {str(k): coerce_response_value(v) for k, v in (raw or {}).items()}


def dump_responses(values: Mapping[str, Text | Number | Flag | Attachment]) -> str:
    return json.dumps({k: v.model_dump() for k, v in values.items()}, ensure_ascii=False, sort_keys=True)


def load_responses(text: str | None) -> Dict[str, Text | Number | Flag | Attachment]:
    if not text:
        return {}
    data = json.loads(text)
    return {str(k): _VALUE_ADAPTER.validate_python(v) for k, v in data.items()}


def plain_value(value: Text | Number | Flag | Attachment) -> Any:
    """Return the JSON scalar for a value; attachments yield their raw handle."""
    if isinstance(value, Number) and value.value.is_integer():
        return int(value.value)
    return value.value


__all__ = [
    "Text",
    "Number",
    "Flag",
    "Attachment",
    "ResponseValue",
    "coerce_response_value",
    "coerce_responses",
    "dump_responses",
    "load_responses",
    "plain_value",
]
