"""
Named-operation channel.

Maps channel method names to gateway and permission-gate calls, converts
loosely-typed arguments into typed ones, and converts typed records back
into plain dicts for the wire.
"""

import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from sms_gateway.errors import InvalidArgument, MethodNotImplemented
from sms_gateway.gateway import MessageStoreGateway
from sms_gateway.permissions import PermissionGate
from sms_gateway.schemas import ConversationsArguments

logger = logging.getLogger(__name__)

CHANNEL_NAME = "sms_getter_package"

METHOD_GET_ALL_SMS = "getAllSms"
METHOD_GET_SMS_BY_ADDRESS = "getSmsByAddress"
METHOD_GET_CONVERSATIONS = "getConversations"
METHOD_GET_CONVERSATION_MESSAGES = "getConversationMessages"
METHOD_GET_MESSAGES_BY_ADDRESS = "getMessagesByAddress"
METHOD_CHECK_PERMISSION = "checkPermission"
METHOD_REQUEST_PERMISSION = "requestPermission"


def _string_argument(arguments: dict, name: str) -> Optional[str]:
    value = arguments.get(name)
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


class SmsChannelHandler:
    """Dispatches channel method calls."""

    def __init__(self, gateway: MessageStoreGateway, gate: PermissionGate):
        self.gateway = gateway
        self.gate = gate
        self._handlers: dict[str, Callable[[dict], Any]] = {
            METHOD_GET_ALL_SMS: self._get_all_sms,
            METHOD_GET_SMS_BY_ADDRESS: self._get_messages_by_address,
            METHOD_GET_MESSAGES_BY_ADDRESS: self._get_messages_by_address,
            METHOD_GET_CONVERSATIONS: self._get_conversations,
            METHOD_GET_CONVERSATION_MESSAGES: self._get_conversation_messages,
            METHOD_CHECK_PERMISSION: self._check_permission,
            METHOD_REQUEST_PERMISSION: self._request_permission,
        }

    @property
    def methods(self) -> list[str]:
        return sorted(self._handlers)

    def on_method_call(self, method: str, arguments: Any = None) -> Any:
        """
        Run one channel method and return its wire payload.

        The method name is resolved before the arguments are looked at, so an
        unknown name is reported as not implemented whatever the body holds.

        Raises:
            MethodNotImplemented: unknown method name
            InvalidArgument: arguments present but not a JSON object
            SmsGatewayError: typed failure of a known method
        """
        handler = self._handlers.get(method)
        if handler is None:
            logger.info(f"Channel method not implemented: {method}")
            raise MethodNotImplemented(method)

        if arguments is not None and not isinstance(arguments, dict):
            raise InvalidArgument(
                f"Arguments must be a JSON object, got {type(arguments).__name__}"
            )

        logger.debug(f"Channel call {method} with arguments {arguments}")
        return handler(arguments or {})

    def _get_all_sms(self, arguments: dict) -> list[dict]:
        return [m.to_wire() for m in self.gateway.get_all_messages()]

    def _get_messages_by_address(self, arguments: dict) -> list[dict]:
        address = _string_argument(arguments, "address")
        return [m.to_wire() for m in self.gateway.get_messages_by_address(address)]

    def _get_conversations(self, arguments: dict) -> list[dict]:
        try:
            window = ConversationsArguments.model_validate(arguments)
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            raise InvalidArgument(
                f"limit and offset must be non-negative integers (invalid: {fields})"
            ) from e
        conversations = self.gateway.list_conversations(limit=window.limit, offset=window.offset)
        return [c.to_wire() for c in conversations]

    def _get_conversation_messages(self, arguments: dict) -> list[dict]:
        thread_id = _string_argument(arguments, "threadId")
        return [m.to_wire() for m in self.gateway.get_conversation_messages(thread_id)]

    def _check_permission(self, arguments: dict) -> bool:
        return self.gate.check_access()

    def _request_permission(self, arguments: dict) -> bool:
        return self.gate.request_access()
