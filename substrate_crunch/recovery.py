#!/usr/bin/env python3
"""
Error Classification and Backoff
Maps failures raised inside a run-mode cycle to the action the loop takes next
"""

import asyncio
import logging
from enum import Enum

from websockets.exceptions import WebSocketException

from .exceptions import (
    ExternalApiError,
    NodeConnectionError,
    NotificationError,
    StorageKeyError,
    SubscriptionFinished,
    UnsupportedRuntimeError,
)

logger = logging.getLogger(__name__)

BACKOFF_UNIT_SECONDS = 60


class RunMode(Enum):
    SUBSCRIBE = "subscribe"
    FLAKES = "flakes"
    VIEW = "view"


class ErrorKind(Enum):
    CONNECTION_FAILURE = "connection-failure"
    SUBSCRIPTION_ENDED = "subscription-ended"
    SOFT_NOTIFICATION_FAILURE = "soft-notification-failure"
    GENERIC_RUNTIME_FAILURE = "generic-runtime-failure"
    EXTERNAL_API_FAILURE = "external-api-failure"
    MALFORMED_INPUT = "malformed-input"
    UNSUPPORTED_RUNTIME = "unsupported-runtime"


class RecoveryAction(Enum):
    RESTART = "restart"
    BACKOFF = "backoff"
    FATAL = "fatal"


# Kinds that reconnect after a short pause in subscribe mode without growing the backoff
_SUBSCRIBE_RESTART_KINDS = {
    ErrorKind.CONNECTION_FAILURE,
    ErrorKind.SUBSCRIPTION_ENDED,
    ErrorKind.SOFT_NOTIFICATION_FAILURE,
}


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception raised by a runtime operation to its ErrorKind"""
    if isinstance(error, UnsupportedRuntimeError):
        return ErrorKind.UNSUPPORTED_RUNTIME
    if isinstance(error, SubscriptionFinished):
        return ErrorKind.SUBSCRIPTION_ENDED
    if isinstance(error, NotificationError):
        return ErrorKind.SOFT_NOTIFICATION_FAILURE
    if isinstance(error, StorageKeyError):
        return ErrorKind.MALFORMED_INPUT
    if isinstance(error, ExternalApiError):
        return ErrorKind.EXTERNAL_API_FAILURE
    if isinstance(error, (NodeConnectionError, ConnectionError, WebSocketException, asyncio.TimeoutError)):
        return ErrorKind.CONNECTION_FAILURE
    return ErrorKind.GENERIC_RUNTIME_FAILURE


def recovery_action(kind: ErrorKind, mode: RunMode) -> RecoveryAction:
    """
    Decide what a run-mode loop does after a failed cycle

    Subscribe mode restarts stream-level failures after a short pause;
    flakes mode backs off on every recoverable failure.
    """
    if kind is ErrorKind.UNSUPPORTED_RUNTIME:
        return RecoveryAction.FATAL
    if mode is RunMode.SUBSCRIBE and kind in _SUBSCRIBE_RESTART_KINDS:
        return RecoveryAction.RESTART
    return RecoveryAction.BACKOFF


class Backoff:
    """
    Exponential backoff between failed cycles

    wait = 60 * base ** attempt seconds, attempt starting at 1. The wait is
    capped at max_wait and the attempt counter stops growing once the cap
    is reached.
    """

    def __init__(self, base: int, max_wait: int):
        self.base = base
        self.max_wait = max_wait
        self.attempt = 1

    def current_wait(self) -> int:
        return min(BACKOFF_UNIT_SECONDS * self.base ** self.attempt, self.max_wait)

    def next_wait(self) -> int:
        """Return the wait for the current attempt and move to the next one"""
        wait = self.current_wait()
        if wait < self.max_wait:
            self.attempt += 1
        return wait

    def reset(self) -> None:
        if self.attempt != 1:
            logger.debug(f"Backoff reset after {self.attempt - 1} failed attempts")
        self.attempt = 1
