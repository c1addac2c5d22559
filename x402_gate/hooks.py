"""Lifecycle hook contexts for x402ResourceServer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from .schemas import PaymentPayload, PaymentRequirements, SettleResponse, VerifyResponse


@dataclass
class AbortResult:
    """Returned by a before-hook to abort the operation."""

    reason: str


@dataclass
class RecoveredVerifyResult:
    """Returned by a verify failure hook to substitute a result."""

    result: VerifyResponse


@dataclass
class RecoveredSettleResult:
    """Returned by a settle failure hook to substitute a result."""

    result: SettleResponse


@dataclass
class VerifyContext:
    payment_payload: PaymentPayload
    requirements: PaymentRequirements


@dataclass
class VerifyResultContext(VerifyContext):
    result: VerifyResponse


@dataclass
class VerifyFailureContext(VerifyContext):
    error: Exception


@dataclass
class SettleContext:
    payment_payload: PaymentPayload
    requirements: PaymentRequirements


@dataclass
class SettleResultContext(SettleContext):
    result: SettleResponse


@dataclass
class SettleFailureContext(SettleContext):
    error: Exception


# Hooks may be plain functions or coroutines
BeforeVerifyHook = Callable[[VerifyContext], Union[None, AbortResult, Awaitable[None | AbortResult]]]
AfterVerifyHook = Callable[[VerifyResultContext], Union[None, Awaitable[None]]]
OnVerifyFailureHook = Callable[
    [VerifyFailureContext],
    Union[None, RecoveredVerifyResult, Awaitable[None | RecoveredVerifyResult]],
]

BeforeSettleHook = Callable[[SettleContext], Union[None, AbortResult, Awaitable[None | AbortResult]]]
AfterSettleHook = Callable[[SettleResultContext], Union[None, Awaitable[None]]]
OnSettleFailureHook = Callable[
    [SettleFailureContext],
    Union[None, RecoveredSettleResult, Awaitable[None | RecoveredSettleResult]],
]
