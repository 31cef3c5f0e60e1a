"""
Chain Runtimes
One BaseRuntime implementation per supported RuntimeIdentity
"""

from typing import Dict, Type

from ..config import CrunchConfig
from ..exceptions import UnsupportedRuntimeError
from ..models import Connection, RuntimeIdentity
from .base import BaseRuntime, LoggingPayoutSubmitter, PayoutSubmitter
from .creditcoin import CreditcoinRuntime
from .kusama import KusamaRuntime
from .polkadot import PolkadotRuntime
from .westend import WestendRuntime

RUNTIMES: Dict[RuntimeIdentity, Type[BaseRuntime]] = {
    runtime.identity: runtime
    for runtime in (PolkadotRuntime, KusamaRuntime, WestendRuntime, CreditcoinRuntime)
}

_unregistered = [identity.name for identity in RuntimeIdentity if identity not in RUNTIMES]
if _unregistered:
    raise ImportError(f"No runtime registered for {', '.join(_unregistered)}")


def get_runtime(connection: Connection, config: CrunchConfig, **collaborators) -> BaseRuntime:
    """Instantiate the runtime bound to the connection's identity"""
    try:
        runtime_class = RUNTIMES[connection.identity]
    except KeyError:
        raise UnsupportedRuntimeError(str(connection.identity)) from None
    return runtime_class(connection, config, **collaborators)


__all__ = [
    'BaseRuntime',
    'PayoutSubmitter',
    'LoggingPayoutSubmitter',
    'PolkadotRuntime',
    'KusamaRuntime',
    'WestendRuntime',
    'CreditcoinRuntime',
    'RUNTIMES',
    'get_runtime',
]
