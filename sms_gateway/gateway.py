"""
Message store gateway.

Read-only operations over the SMS store. Each call checks its arguments,
then the permission gate, then runs its query (or, for conversations,
1 + N queries) inside a session that is closed before the call returns.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from sms_gateway.errors import AccessDenied, InvalidArgument, ReadError
from sms_gateway.permissions import PermissionGate
from sms_gateway.schemas import ConversationRecord, MessageRecord
from sms_gateway.storage import (
    query_all_sms,
    query_conversations,
    query_latest_sms_in_thread,
    query_sms_by_address,
    query_sms_by_thread,
)

logger = logging.getLogger(__name__)


class MessageStoreGateway:
    """
    Gateway over the external message store.

    Args:
        session_factory: Callable returning a new Session (usually SessionLocal)
        gate: Permission gate consulted before every query
    """

    def __init__(self, session_factory: Callable[[], Session], gate: PermissionGate):
        self._session_factory = session_factory
        self.gate = gate

    def _require_access(self) -> None:
        if not self.gate.check_access():
            logger.warning("Store access refused: READ_SMS not granted")
            raise AccessDenied()

    def get_all_messages(self) -> list[MessageRecord]:
        """Every SMS in the store, newest first."""
        self._require_access()

        try:
            with self._session_factory() as db:
                rows = query_all_sms(db)
                messages = [MessageRecord.from_row(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to read SMS messages: {e}")
            raise ReadError.wrap("SMS_READ_ERROR", "Error reading SMS messages", e) from e

        logger.info(f"Read {len(messages)} SMS messages")
        return messages

    def get_messages_by_address(self, address: Optional[str]) -> list[MessageRecord]:
        """
        Every SMS exchanged with one address, oldest first.

        Kept for callers that only know the address; thread-based access
        via get_conversation_messages is preferred when a thread id is known.
        """
        if not address:
            raise InvalidArgument("Address cannot be null or empty", code="INVALID_ADDRESS")
        self._require_access()

        try:
            with self._session_factory() as db:
                rows = query_sms_by_address(db, address)
                messages = [MessageRecord.from_row(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to read messages for address {address!r}: {e}")
            raise ReadError.wrap(
                "CONVERSATION_MESSAGES_ERROR", "Error reading conversation messages", e
            ) from e

        logger.info(f"Read {len(messages)} messages for address {address!r}")
        return messages

    def list_conversations(self, limit: int = 0, offset: int = 0) -> list[ConversationRecord]:
        """
        Conversation summaries, newest first.

        The thread listing is windowed by the store (limit = 0 means
        unbounded and ignores offset). Each thread's address and snippet are
        then resolved from its newest message with one extra query per row;
        a failed lookup aborts the whole call.
        """
        if limit < 0 or offset < 0:
            raise InvalidArgument("limit and offset must be non-negative integers")
        self._require_access()

        with self._session_factory() as db:
            try:
                threads = query_conversations(db, limit=limit, offset=offset)
            except Exception as e:
                logger.error(f"Failed to read conversation threads: {e}")
                raise ReadError.wrap(
                    "CONVERSATIONS_READ_ERROR", "Error reading conversations", e
                ) from e

            conversations = []
            for thread in threads:
                try:
                    latest = query_latest_sms_in_thread(db, thread.thread_id)
                except Exception as e:
                    logger.error(f"Failed to resolve thread {thread.thread_id}: {e}")
                    raise ReadError.wrap(
                        "THREAD_RESOLUTION_ERROR",
                        f"Error resolving conversation thread {thread.thread_id}",
                        e,
                    ) from e

                conversations.append(
                    ConversationRecord(
                        conversation_id=thread.id,
                        thread_id=thread.thread_id,
                        address=latest.address if latest else "",
                        date=thread.date or 0,
                        snippet=latest.body if latest else "",
                    )
                )

        logger.info(f"Read {len(conversations)} conversations (limit={limit}, offset={offset})")
        return conversations

    def get_conversation_messages(self, thread_id: Optional[str]) -> list[MessageRecord]:
        """Every SMS in one thread, oldest first, with threadId populated."""
        if not thread_id:
            raise InvalidArgument("Thread ID cannot be null or empty", code="INVALID_THREAD_ID")
        self._require_access()

        try:
            with self._session_factory() as db:
                rows = query_sms_by_thread(db, thread_id)
                messages = [MessageRecord.from_row(row, include_thread=True) for row in rows]
        except Exception as e:
            logger.error(f"Failed to read messages for thread {thread_id!r}: {e}")
            raise ReadError.wrap(
                "CONVERSATION_MESSAGES_ERROR", "Error reading conversation messages", e
            ) from e

        logger.info(f"Read {len(messages)} messages for thread {thread_id!r}")
        return messages
