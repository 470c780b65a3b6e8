"""HTTP access to the CRM backend.

Exports:
    RequestGateway: Tagging/auth-injecting httpx wrapper that signals expiry.
    RequestDescriptor: Caller-side description of one outbound call.
    build_gateway: Construct the process-wide gateway from settings.
    CrmApi: Typed wrappers for the CRM endpoints.
"""

from __future__ import annotations

from src.crm_client.gateway.client import RequestDescriptor, RequestGateway, build_gateway
from src.crm_client.gateway.resources import CrmApi

__all__ = [
    "CrmApi",
    "RequestDescriptor",
    "RequestGateway",
    "build_gateway",
]
