# application/ports/transport.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from requests.cookies import RequestsCookieJar
from requests.structures import CaseInsensitiveDict


@dataclass(frozen=True)
class MultipartPart:
    name: str
    contents: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return self.filename is not None or self.content_type is not None


@dataclass
class WireRequest:
    method: str
    url: str
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: Optional[Union[str, bytes]] = None


@dataclass(frozen=True)
class RequestOptions:
    cookies: RequestsCookieJar
    form_params: Optional[List[Tuple[str, str]]] = None
    multipart: Optional[List[MultipartPart]] = None
    auth: Optional[Tuple[str, str, str]] = None
    timeout: Optional[float] = None
    connect_timeout: Optional[float] = None
    verify: bool = False
    http_errors: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def allow_redirects(self) -> bool:
        # redirects are followed by the navigation layer, never by the transport
        return False


@dataclass(frozen=True)
class TransportResponse:
    status: int
    headers: List[Tuple[str, str]]
    body: bytes
    url: Optional[str] = None

    def header_map(self) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {}
        for name, value in self.headers:
            for key in out:
                if key.lower() == name.lower():
                    out[key].append(value)
                    break
            else:
                out[name] = [value]
        return out


Handler = Callable[[WireRequest, RequestOptions], TransportResponse]
Middleware = Callable[[Handler], Handler]


class TransportPort(ABC):
    @abstractmethod
    def send(self, request: WireRequest, options: RequestOptions) -> TransportResponse:
        ...

    def close(self) -> None:
        return None
