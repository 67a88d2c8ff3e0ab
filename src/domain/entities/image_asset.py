from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass

from src.domain.errors import DecodeError

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>[^,]*),(?P<data>.*)$", re.S)


@dataclass(frozen=True)
class ImageAsset:
    data: bytes
    mime_type: str = "image/png"

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_base64(cls, data: str, mime_type: str) -> ImageAsset:
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"Invalid base64 image payload: {exc}") from exc
        return cls(data=raw, mime_type=mime_type)

    @classmethod
    def from_data_url(cls, url: str) -> ImageAsset:
        match = _DATA_URL_RE.match(url or "")
        if match is None or "base64" not in match.group("params").split(";"):
            raise DecodeError("Invalid image data URL")
        return cls.from_base64(match.group("data"), match.group("mime") or "image/png")
