"""
substrate-crunch: unattended staking reward claimer for Substrate chains
"""

__version__ = "1.0.0"
__author__ = "substrate-crunch contributors"

from .config import CrunchConfig
from .crunch import Crunch, load_stashes
from .exceptions import *
from .fetchers import ExternalDataFetcher
from .healthcheck import HealthCheckServer
from .models import AddressFormat, Connection, GradeRecord, NodeInfo, RuntimeIdentity
from .recovery import Backoff, ErrorKind, RunMode, classify_error, recovery_action
from .supervisor import ConnectionSupervisor, resolve_runtime_identity
from .utils import get_account_id_from_storage_key

__all__ = [
    "CrunchConfig",
    "Crunch",
    "load_stashes",
    "ExternalDataFetcher",
    "HealthCheckServer",
    "AddressFormat",
    "Connection",
    "GradeRecord",
    "NodeInfo",
    "RuntimeIdentity",
    "Backoff",
    "ErrorKind",
    "RunMode",
    "classify_error",
    "recovery_action",
    "ConnectionSupervisor",
    "resolve_runtime_identity",
    "get_account_id_from_storage_key",
    "CrunchError",
    "NodeConnectionError",
    "RpcError",
    "SubscriptionFinished",
    "NotificationError",
    "ExternalApiError",
    "StorageKeyError",
    "UnsupportedRuntimeError",
]
