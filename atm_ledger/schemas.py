"""
Pydantic schemas for API requests and responses
"""

from typing import List
from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    name: str
    pin: str = Field(..., description="4-digit PIN")


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Amount as typed on the keypad")


class TransferRequest(BaseModel):
    recipient: str
    amount: str = Field(..., description="Amount as typed on the keypad")


class SessionResponse(BaseModel):
    session_id: str
    name: str
    balance: str = Field(..., description="Decimal balance as string")


class OperationResponse(BaseModel):
    message: str
    balance: str
    persisted: bool


class HistoryResponse(BaseModel):
    name: str
    records: List[str] = Field(..., description="Most recent first")
