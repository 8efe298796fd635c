"""
Caller-side API for the SMS gateway channel.

Wraps an httpx.Client pointed at the gateway; a FastAPI TestClient works
too. Every failure, including an unknown method, is raised as SmsException
so callers can branch on `code`.
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class SmsException(Exception):
    """Failure returned by the gateway, as (code, message)."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"SmsException({self.code}): {self.message}"


class SmsGatewayClient:
    """
    Typed access to the gateway's channel methods.

    Example:
        client = SmsGatewayClient(httpx.Client(base_url="http://localhost:8000"))
        if not client.check_permission():
            client.request_permission()
        conversations = client.get_conversations(limit=20)
    """

    def __init__(self, http: httpx.Client):
        self._http = http

    def _invoke(self, method: str, arguments: Optional[dict] = None) -> Any:
        logger.debug(f"Invoking channel method {method}")
        response = self._http.post(f"/channel/{method}", json=arguments or {})
        self._raise_for_error(method, response)
        return response.json()["result"]

    @staticmethod
    def _raise_for_error(method: str, response: httpx.Response) -> None:
        if response.status_code == httpx.codes.NOT_IMPLEMENTED:
            raise SmsException("NOT_IMPLEMENTED", f"Method '{method}' is not implemented")

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            code = body.get("code") or "UNKNOWN"
            message = body.get("message") or "Unknown error occurred"
            raise SmsException(code, message)

    def get_all_sms(self) -> list[dict[str, Any]]:
        """Every SMS on the device, newest first."""
        return self._invoke("getAllSms")

    def get_sms_by_address(self, address: str) -> list[dict[str, Any]]:
        return self._invoke("getSmsByAddress", {"address": address})

    def get_conversations(self, limit: int = 0, offset: int = 0) -> list[dict[str, Any]]:
        """
        Conversation summaries, newest first.

        limit = 0 returns every conversation; offset only applies when a
        limit is given.
        """
        return self._invoke("getConversations", {"limit": limit, "offset": offset})

    def get_conversation_messages(self, thread_id: str) -> list[dict[str, Any]]:
        """Messages in one thread, oldest first."""
        return self._invoke("getConversationMessages", {"threadId": thread_id})

    def get_messages_by_address(self, address: str) -> list[dict[str, Any]]:
        return self._invoke("getMessagesByAddress", {"address": address})

    def check_permission(self) -> bool:
        return self._invoke("checkPermission")

    def request_permission(self) -> bool:
        """
        Ask the host to prompt for READ_SMS.

        Returns False whenever a prompt is shown; the user's answer is only
        visible through a later check_permission().
        """
        return self._invoke("requestPermission")
