# application/browser_client.py
from __future__ import annotations

from typing import Optional

from application.ports.logger import LoggerPort
from application.ports.transport import TransportPort
from application.services.aws_signer import AwsSigV4Signer
from application.services.html_title import extract_title, is_html
from application.services.redactor import mask_dict, mask_pairs, mask_url
from application.services.request_translator import RequestDefaults, RequestTranslator
from application.services.response_normalizer import ResponseNormalizer
from application.services.uri_resolver import HistoryPort, UriResolver
from domain.browser_request import BrowserRequest
from domain.config import AwsSigningSpec
from domain.cookie import CookieJar
from domain.exceptions import TransportError
from domain.response import CanonicalResponse


class BrowserClient:
    """
    Executes one BrowserRequest over the configured transport.

    Redirects are never followed here: a 3xx (native, or synthesized from a
    meta refresh) is handed back to the caller's navigation loop.
    """

    def __init__(
        self,
        handle: TransportPort,
        base_url: str,
        logger: LoggerPort,
        defaults: Optional[RequestDefaults] = None,
        refresh_max_interval: int = 0,
        translator: Optional[RequestTranslator] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        resolver: Optional[UriResolver] = None,
    ):
        self._handle = handle
        self._base_url = base_url
        self._logger = logger
        self._defaults = defaults or RequestDefaults()
        self._refresh_max_interval = refresh_max_interval
        self._resolver = resolver or UriResolver()
        self._translator = translator or RequestTranslator()
        self._normalizer = normalizer or ResponseNormalizer(self._resolver)
        self._aws: Optional[AwsSigningSpec] = None
        self._signer: Optional[AwsSigV4Signer] = None

    @property
    def handle(self) -> TransportPort:
        return self._handle

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def defaults(self) -> RequestDefaults:
        return self._defaults

    @defaults.setter
    def defaults(self, value: RequestDefaults) -> None:
        self._defaults = value

    @property
    def refresh_max_interval(self) -> int:
        return self._refresh_max_interval

    @property
    def aws_auth(self) -> Optional[AwsSigningSpec]:
        return self._aws

    def set_handle(self, handle: TransportPort) -> None:
        self._handle = handle

    def set_base_url(self, base_url: str) -> None:
        self._base_url = base_url

    def set_refresh_max_interval(self, seconds: int) -> None:
        """
        A refresh with an interval >= `seconds` is left as a normal page;
        a shorter one (or one without interval) becomes a redirect.
        """
        self._refresh_max_interval = seconds

    def set_header(self, name: str, value: str) -> None:
        # empty value deletes
        self._defaults = self._defaults.with_header(name, value)

    def delete_header(self, name: str) -> None:
        self._defaults = self._defaults.without_header(name)

    def set_auth(self, username: str, password: str, scheme: str = "basic") -> None:
        self._defaults = self._defaults.with_auth(username, password, scheme)

    def set_aws_auth(self, spec: Optional[AwsSigningSpec]) -> None:
        self._aws = spec
        self._signer = AwsSigV4Signer(spec) if spec is not None else None

    def get_absolute_uri(self, uri: str, history: Optional[HistoryPort] = None) -> str:
        return self._resolver.resolve(uri, self._base_url, history)

    def execute(
        self,
        request: BrowserRequest,
        cookies: CookieJar,
        history: Optional[HistoryPort] = None,
    ) -> CanonicalResponse:
        wire, options = self._translator.translate(request, cookies, self._defaults)
        if self._signer is not None:
            wire = self._signer.sign(wire)

        self._logger.debug(
            "http.request",
            method=wire.method,
            url=mask_url(wire.url),
            headers=mask_dict(wire.headers),
            form=mask_pairs(options.form_params or []),
            multipart=[p.name for p in options.multipart or []],
            cookies=sorted(c.name for c in options.cookies),
        )

        try:
            raw = self._handle.send(wire, options)
        except TransportError as e:
            if not e.has_response:
                self._logger.error(
                    "http.transport_failed",
                    method=wire.method,
                    url=mask_url(wire.url),
                    error=str(e),
                )
                raise
            raw = e.response

        current_uri = request.uri
        if history is not None and not history.is_empty():
            current_uri = history.current().uri

        response = self._normalizer.normalize(
            raw,
            current_uri=current_uri,
            base_url=self._base_url,
            history=history,
            refresh_max_interval=self._refresh_max_interval,
        )

        if response.status != raw.status:
            self._logger.info(
                "http.refresh_redirect",
                url=mask_url(wire.url),
                original_status=raw.status,
                location=response.location,
            )

        self._logger.info(
            "http.response",
            method=wire.method,
            url=mask_url(raw.url or wire.url),
            status=response.status,
            content_type=response.content_type,
            body_len=len(response.body),
            title=extract_title(response.text) if is_html(response.content_type) else None,
        )
        return response
