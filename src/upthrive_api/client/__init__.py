"""Clients for the requests API with explicit transient-failure fallback."""

from upthrive_api.client.api_client import EngineRequestsClient
from upthrive_api.client.api_client import RequestsApiClient
from upthrive_api.client.api_client import call_with_fallback
from upthrive_api.client.result import Failure
from upthrive_api.client.result import Result
from upthrive_api.client.result import Success
from upthrive_api.client.result import TransientFailure

__all__ = [
    "EngineRequestsClient",
    "Failure",
    "RequestsApiClient",
    "Result",
    "Success",
    "TransientFailure",
    "call_with_fallback",
]
