from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

UINT32_MAX = 2**32 - 1

# ----------------------------
# Wire schemas
# ----------------------------
class Topology(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_hash: str = Field(alias="hash")
    equivalent: int = Field(ge=0, le=UINT32_MAX)
    neighbors: List[str] = Field(default_factory=list)

class TrustLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_hash: str = Field(alias="source")
    destination_hash: str = Field(alias="destination")
    equivalent: Optional[int] = Field(default=None, ge=0, le=UINT32_MAX)

class Payment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_hash: str = Field(alias="coordinator")
    destination_hash: str = Field(alias="receiver")
    transaction_id: Optional[str] = Field(default=None, alias="transaction_uuid")
    equivalent: Optional[int] = Field(default=None, ge=0, le=UINT32_MAX)
    paths: List[List[str]] = Field(default_factory=list)


# ----------------------------
# Routed event variants
# ----------------------------
@dataclass(frozen=True)
class TopologySnapshot:
    payload: Topology

@dataclass(frozen=True)
class TrustLineOpened:
    payload: TrustLine

@dataclass(frozen=True)
class TrustLineClosed:
    payload: TrustLine

@dataclass(frozen=True)
class PaymentCompleted:
    payload: Payment


RoutedEvent = Union[TopologySnapshot, TrustLineOpened, TrustLineClosed, PaymentCompleted]
