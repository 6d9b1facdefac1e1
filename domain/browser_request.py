from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

HTTP_PREFIX = "HTTP_"

# headers that travel without the HTTP_ prefix in server-variable storage
CONTENT_HEADERS = ("CONTENT_LENGTH", "CONTENT_MD5", "CONTENT_TYPE")


def encode_header_name(name: str) -> str:
    """
    Header name -> server-variable key.
    例: "X-Requested-With" => "HTTP_X_REQUESTED_WITH"
    """
    return HTTP_PREFIX + name.strip().upper().replace("-", "_")


@dataclass(frozen=True)
class UploadedFile:
    path: Optional[Union[str, Path]] = None
    filename: Optional[str] = None
    content_type: Optional[str] = None
    contents: Optional[bytes] = None

    def read(self) -> bytes:
        if self.contents is not None:
            return self.contents
        return Path(self.path).read_bytes()

    @property
    def is_empty(self) -> bool:
        return self.contents is None and not self.path


@dataclass(frozen=True)
class BrowserRequest:
    """
    Abstract request built by the navigation layer.

    - parameters: form/query values, may nest (dict/list) and are flattened with
      bracket notation at the wire boundary
    - files: field name -> UploadedFile | path | nested dict/list of those
    - server: server-variable style storage, headers live under HTTP_* keys
    - content: raw body; when set, parameters are never urlencoded into the body
    """

    method: str
    uri: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    files: Mapping[str, Any] = field(default_factory=dict)
    server: Mapping[str, str] = field(default_factory=dict)
    content: Optional[Union[str, bytes]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())

    def with_header(self, name: str, value: str) -> "BrowserRequest":
        server: Dict[str, str] = dict(self.server)
        server[encode_header_name(name)] = value
        return replace(self, server=server)

    @classmethod
    def create(
        cls,
        method: str,
        uri: str,
        parameters: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        content: Optional[Union[str, bytes]] = None,
    ) -> "BrowserRequest":
        server = {encode_header_name(k): v for k, v in (headers or {}).items()}
        return cls(
            method=method,
            uri=uri,
            parameters=dict(parameters or {}),
            files=dict(files or {}),
            server=server,
            content=content,
        )
