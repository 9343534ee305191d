"""JSON-RPC error payload schemas"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


class RpcErrorObject(BaseModel):
    code: StrictInt
    message: StrictStr


class SimulateTransactionResult(BaseModel):
    """Payload attached to a send-transaction preflight failure"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    err: Optional[Any] = None
    logs: Optional[List[str]] = None
    accounts: Optional[List[Optional[Dict[str, Any]]]] = None
    units_consumed: Optional[int] = Field(default=None, alias="unitsConsumed")
    return_data: Optional[Dict[str, Any]] = Field(default=None, alias="returnData")


class NodeUnhealthyErrorData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    num_slots_behind: Optional[int] = Field(default=None, alias="numSlotsBehind")
