#!/usr/bin/env python3
"""
Creditcoin Runtime
Not graded by ONE-T
"""

from ..models import RuntimeIdentity
from .base import BaseRuntime


class CreditcoinRuntime(BaseRuntime):
    identity = RuntimeIdentity.CREDITCOIN
    onet_chain = None
    max_batch_calls = 8
