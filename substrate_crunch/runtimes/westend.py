#!/usr/bin/env python3
"""
Westend Runtime
"""

from ..models import RuntimeIdentity
from .base import BaseRuntime


class WestendRuntime(BaseRuntime):
    identity = RuntimeIdentity.WESTEND
    onet_chain = "westend"
    max_batch_calls = 16
