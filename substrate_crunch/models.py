#!/usr/bin/env python3
"""
Crunch Data Models
Data structures shared by the supervisor, the runtimes and the fetchers
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List

from scalecodec.utils.ss58 import ss58_decode, ss58_encode

from .exceptions import UnsupportedRuntimeError

if TYPE_CHECKING:
    from .node_client import NodeClient


class RuntimeIdentity(Enum):
    """Supported chain variants keyed by their native token symbol"""
    POLKADOT = "DOT"
    KUSAMA = "KSM"
    WESTEND = "WND"
    CREDITCOIN = "CTC"

    @classmethod
    def from_token_symbol(cls, token_symbol: str) -> "RuntimeIdentity":
        for identity in cls:
            if identity.value == token_symbol:
                return identity
        raise UnsupportedRuntimeError(token_symbol)


@dataclass(frozen=True)
class AddressFormat:
    """SS58 display format for account ids on the connected chain"""
    ss58_prefix: int = 0

    def encode(self, account_id: bytes) -> str:
        return ss58_encode(account_id, ss58_format=self.ss58_prefix)

    @staticmethod
    def decode(address: str) -> bytes:
        """Return the raw 32 byte account id behind an SS58 address"""
        return bytes.fromhex(ss58_decode(address).replace("0x", ""))


@dataclass(frozen=True)
class NodeInfo:
    """Metadata reported by the node right after connecting"""
    chain: str
    name: str
    version: str
    ss58_prefix: int = 0
    token_symbol: str = ""
    token_decimals: int = 0


@dataclass
class Connection:
    """One connection epoch: the node client plus what was resolved about it"""
    client: "NodeClient"
    identity: RuntimeIdentity
    info: NodeInfo
    address_format: AddressFormat

    @property
    def chain(self) -> str:
        return self.info.chain

    async def close(self) -> None:
        await self.client.close()


@dataclass(frozen=True)
class GradeRecord:
    """ONE-T validator grade for a stash"""
    address: str
    grade: str
    authority_inclusion: float
    para_authority_inclusion: float
    sessions: List[int] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict) -> "GradeRecord":
        return cls(
            address=str(data["address"]),
            grade=str(data["grade"]),
            authority_inclusion=float(data["authority_inclusion"]),
            para_authority_inclusion=float(data["para_authority_inclusion"]),
            sessions=[int(s) for s in data["sessions"]],
        )


@dataclass(frozen=True)
class PayoutCall:
    """Single Staking.payout_stakers call"""
    stash: str
    era: int


@dataclass
class PayoutBatch:
    """Calls submitted together in one utility batch"""
    chain: str
    era: int
    calls: List[PayoutCall] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.calls)
