"""Utility functions for the security pipeline."""

from .ip import get_client_ip, is_private_ip, parse_ip
from .request import (
    MalformedBody,
    get_body,
    get_body_or_empty,
    get_path_params,
    get_query_params,
    get_request_ip,
)
from .walk import MAX_DEPTH, dotted, walk

__all__ = [
    "get_client_ip",
    "is_private_ip",
    "parse_ip",
    "MalformedBody",
    "get_body",
    "get_body_or_empty",
    "get_path_params",
    "get_query_params",
    "get_request_ip",
    "MAX_DEPTH",
    "dotted",
    "walk",
]
