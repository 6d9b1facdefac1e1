# infrastructure/http/middleware.py
from __future__ import annotations

import time
from typing import Callable, List, Optional

from application.ports.logger import LoggerPort
from application.ports.transport import Handler, Middleware, RequestOptions, TransportResponse, WireRequest
from domain.exceptions import TransportError


def retry_middleware(
    max_retries: int = 2,
    backoff_sec: Optional[List[float]] = None,
    logger: Optional[LoggerPort] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Middleware:
    """
    Retries requests that failed without any response (connection refused,
    timeout). Responses, error statuses included, are never retried.

    max_retries=2 => up to 3 attempts. backoff_sec[i] is the wait before retry
    i+1; missing entries wait 1 second.
    """
    backoff = list(backoff_sec or [])

    def middleware(next_handler: Handler) -> Handler:
        def handler(request: WireRequest, options: RequestOptions) -> TransportResponse:
            attempt = 0
            while True:
                try:
                    return next_handler(request, options)
                except TransportError as e:
                    if e.has_response or attempt >= max_retries:
                        raise
                    wait_sec = backoff[attempt] if attempt < len(backoff) else 1
                    attempt += 1
                    if logger is not None:
                        logger.info(
                            "transport.retry",
                            url=request.url,
                            attempt=attempt,
                            max_retries=max_retries,
                            wait_sec=wait_sec,
                            error=str(e),
                        )
                    sleep(wait_sec)

        return handler

    return middleware


def logging_middleware(logger: LoggerPort) -> Middleware:
    def middleware(next_handler: Handler) -> Handler:
        def handler(request: WireRequest, options: RequestOptions) -> TransportResponse:
            started = time.monotonic()
            response = next_handler(request, options)
            logger.debug(
                "transport.exchange",
                method=request.method,
                url=request.url,
                status=response.status,
                elapsed_ms=int((time.monotonic() - started) * 1000),
            )
            return response

        return handler

    return middleware
