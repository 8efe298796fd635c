"""
Permission gate for the read-message capability.

The grant state belongs to the host; the gate only observes it and asks the
host to prompt. Prompt outcomes arrive later through the host's result
callback, never through the call that triggered the prompt.
"""

import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Iterable, Optional, Protocol

from sms_gateway.errors import NoInteractiveContext, PermissionRequestError

logger = logging.getLogger(__name__)

READ_SMS = "android.permission.READ_SMS"

# Request code the READ_SMS prompt is issued with
SMS_PERMISSION_REQUEST_CODE = 1001


@dataclass
class InteractiveContext:
    """A foreground context able to show consent prompts."""
    name: str


@dataclass
class PendingPrompt:
    request_code: int
    capabilities: list[str]
    context: InteractiveContext


class PermissionProvider(Protocol):
    def is_granted(self, capability: str) -> bool:
        ...

    def request(
        self,
        context: InteractiveContext,
        capabilities: list[str],
        request_code: int,
    ) -> None:
        ...


class HostPermissionProvider:
    """
    In-process stand-in for the host permission subsystem.

    Prompts are recorded as pending until the host delivers a result with
    the matching request code.
    """

    def __init__(self, granted: Iterable[str] = ()):
        self._granted: set[str] = set(granted)
        self._pending: dict[int, PendingPrompt] = {}
        self._lock = Lock()

    def is_granted(self, capability: str) -> bool:
        with self._lock:
            return capability in self._granted

    def request(
        self,
        context: InteractiveContext,
        capabilities: list[str],
        request_code: int,
    ) -> None:
        with self._lock:
            self._pending[request_code] = PendingPrompt(
                request_code=request_code,
                capabilities=list(capabilities),
                context=context,
            )
        logger.info(
            f"Consent prompt shown in context {context.name!r} "
            f"for {capabilities} (request code {request_code})"
        )

    def pending(self, request_code: int) -> Optional[PendingPrompt]:
        with self._lock:
            return self._pending.get(request_code)

    def deliver_result(self, request_code: int, granted: bool) -> bool:
        """
        Deliver the user's answer to a pending prompt.

        Returns:
            True if a prompt with this request code was pending, False otherwise
        """
        with self._lock:
            prompt = self._pending.pop(request_code, None)
            if prompt is None:
                return False
            if granted:
                self._granted.update(prompt.capabilities)
            else:
                self._granted.difference_update(prompt.capabilities)
        logger.info(
            f"Permission result for request code {request_code}: "
            f"{'granted' if granted else 'denied'} {prompt.capabilities}"
        )
        return True

    def grant(self, capability: str) -> None:
        with self._lock:
            self._granted.add(capability)

    def revoke(self, capability: str) -> None:
        with self._lock:
            self._granted.discard(capability)


@dataclass
class PermissionGate:
    """
    Answers "is access granted" and "try to obtain access" for one capability.

    The foreground context follows the host's lifecycle: it is attached,
    detached across configuration changes, and reattached.
    """
    provider: PermissionProvider
    capability: str = READ_SMS
    request_code: int = SMS_PERMISSION_REQUEST_CODE
    context: Optional[InteractiveContext] = field(default=None)

    def attach_context(self, context: InteractiveContext) -> None:
        logger.debug(f"Interactive context attached: {context.name!r}")
        self.context = context

    def detach_context(self) -> None:
        logger.debug("Interactive context detached")
        self.context = None

    def check_access(self) -> bool:
        return self.provider.is_granted(self.capability)

    def request_access(self) -> bool:
        """
        Ask the host to prompt for the capability.

        Returns True only when access is already granted. When a prompt is
        shown the result is always False; callers re-check after the host
        delivers its permission result.

        Raises:
            NoInteractiveContext: no foreground context is attached
            PermissionRequestError: the host failed to show the prompt
        """
        if self.check_access():
            return True

        if self.context is None:
            raise NoInteractiveContext()

        try:
            self.provider.request(self.context, [self.capability], self.request_code)
        except Exception as e:
            logger.error(f"Failed to request {self.capability}: {e}")
            raise PermissionRequestError(f"Error requesting SMS permission: {e}")

        return False
