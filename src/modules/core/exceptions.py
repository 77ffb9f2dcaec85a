"""Standardised error responses for framework-level API errors.

Domain errors (``OrderNotFound``, ``NoValidSelection`` ...) are translated
by the views themselves.  Everything DRF raises on its own (authentication,
parsing, serializer validation, 404 from the router) goes through
``standardized_exception_handler`` and is rendered as::

    {"type": "validation_error", "errors": [{"code": ..., "detail": ..., "attr": ...}]}
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

import structlog
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


def standardized_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        error_type = "validation_error"
        errors = list(_flatten_validation_errors(exc.detail))
    else:
        error_type = "client_error" if response.status_code < 500 else "server_error"
        errors = [_single_error(exc)]

    logger.info(
        "api.error_response",
        status_code=response.status_code,
        error_type=error_type,
        codes=[error["code"] for error in errors],
    )
    response.data = {"type": error_type, "errors": errors}
    return response


def _single_error(exc: Exception) -> Dict[str, Any]:
    if not isinstance(exc, exceptions.APIException):
        return {"code": "error", "detail": str(exc), "attr": None}

    codes = exc.get_codes()
    code = codes if isinstance(codes, str) else exc.default_code
    detail = exc.detail
    if isinstance(detail, dict):
        detail = detail.get("detail", exc.default_detail)
    elif isinstance(detail, list) and detail:
        detail = detail[0]
    return {"code": str(code), "detail": str(detail), "attr": None}


def _flatten_validation_errors(detail: Any, attr: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    if isinstance(detail, dict):
        for key, value in detail.items():
            child = None if key == "non_field_errors" else key
            if attr and child:
                child = f"{attr}.{child}"
            yield from _flatten_validation_errors(value, child or attr)
    elif isinstance(detail, list):
        for item in detail:
            yield from _flatten_validation_errors(item, attr)
    else:
        yield {
            "code": getattr(detail, "code", "invalid"),
            "detail": str(detail),
            "attr": attr,
        }
