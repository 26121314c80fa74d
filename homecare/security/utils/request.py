"""Accessors for the parts of a request the pipeline inspects."""

import json
from typing import Any, Dict

from django.http import HttpRequest
from django.urls import Resolver404, resolve

_PARSED_BODY_ATTR = "_homecare_parsed_body"


class MalformedBody(ValueError):
    """The declared JSON body could not be decoded."""


def flatten_querydict(querydict) -> Dict[str, Any]:
    """QueryDict -> plain dict; repeated keys keep all their values as a list."""
    return {
        key: values[0] if len(values) == 1 else list(values)
        for key, values in querydict.lists()
    }


def get_query_params(request: HttpRequest) -> Dict[str, Any]:
    return flatten_querydict(request.GET)


def get_body(request: HttpRequest) -> Any:
    """
    Parse the request body once and cache it on the request.

    JSON bodies are decoded, urlencoded forms flattened; anything else
    (multipart uploads, plain text) yields an empty dict.

    Raises:
        MalformedBody: If a JSON content type carries undecodable or too deeply
            nested content
    """
    if hasattr(request, _PARSED_BODY_ATTR):
        return getattr(request, _PARSED_BODY_ATTR)

    content_type = request.content_type or ""
    if "json" in content_type:
        raw = request.body
        if not raw:
            parsed: Any = {}
        else:
            try:
                parsed = json.loads(raw.decode(request.encoding or "utf-8"))
            except (UnicodeDecodeError, ValueError, RecursionError) as exc:
                raise MalformedBody(str(exc)) from exc
    elif content_type == "application/x-www-form-urlencoded":
        parsed = flatten_querydict(request.POST)
    else:
        parsed = {}

    setattr(request, _PARSED_BODY_ATTR, parsed)
    return parsed


def get_body_or_empty(request: HttpRequest) -> Any:
    try:
        return get_body(request)
    except MalformedBody:
        return {}


def get_path_params(request: HttpRequest) -> Dict[str, Any]:
    """URL kwargs of the view the request will be routed to."""
    match = getattr(request, "resolver_match", None)
    if match is not None:
        return dict(match.kwargs)
    try:
        return dict(resolve(request.path_info).kwargs)
    except Resolver404:
        return {}


def get_request_ip(request: HttpRequest, trust_proxy: bool = False) -> str:
    """
    The address the framework attributes the request to.

    With ``trust_proxy`` the first X-Forwarded-For hop is used, mirroring a
    single trusted reverse proxy. Falls back to 'unknown'.
    """
    if trust_proxy:
        x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
        if x_forwarded_for:
            ip = x_forwarded_for.split(",")[0].strip()
            if ip:
                return ip
    return request.META.get("REMOTE_ADDR") or "unknown"
