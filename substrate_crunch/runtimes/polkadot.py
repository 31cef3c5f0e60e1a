#!/usr/bin/env python3
"""
Polkadot Runtime
"""

from ..models import RuntimeIdentity
from .base import BaseRuntime


class PolkadotRuntime(BaseRuntime):
    identity = RuntimeIdentity.POLKADOT
    onet_chain = "polkadot"
    max_batch_calls = 8
