from __future__ import annotations

"""Pydantic request schemas for the token API.

Amounts travel as decimal strings; 18-decimal values do not fit in a JSON
double.
"""

from pydantic import BaseModel, Field


class MintRequest(BaseModel):
    caller: str = Field(..., description="Address holding MINTER_ROLE")


class BeneficiaryRequest(BaseModel):
    caller: str = Field(..., description="Address holding DEFAULT_ADMIN_ROLE")
    address: str = Field(..., description="New mint beneficiary")


class TransferRequest(BaseModel):
    sender: str = Field(..., description="Holder address")
    to: str = Field(..., description="Receiver; the token address burns")
    amount: str = Field(..., pattern=r"^[0-9]+$", description="Amount in 18-decimal base units")
