#!/usr/bin/env python3
"""
Kusama Runtime
"""

from ..models import RuntimeIdentity
from .base import BaseRuntime


class KusamaRuntime(BaseRuntime):
    identity = RuntimeIdentity.KUSAMA
    onet_chain = "kusama"
    max_batch_calls = 16
