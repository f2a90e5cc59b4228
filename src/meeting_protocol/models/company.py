"""
Management company profile rendered into the company verification QR block.
"""

from pydantic import BaseModel, Field


class CompanyProfile(BaseModel):
    """Requisites of the operator issuing the protocol."""

    name: str = Field(..., description='Registered company name')
    address: str = Field(default='', description='Legal address')
    bank: str = Field(default='', description='Servicing bank and branch')
    account: str = Field(default='', description='Settlement account number')
    inn: str = Field(default='', description='Taxpayer identification number')
    oked: str = Field(default='', description='Economic activity classifier code')
    mfo: str = Field(default='', description='Bank branch code')

    model_config = {'frozen': True}
