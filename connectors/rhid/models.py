"""RHiD API response models.

These map the RHiD wire format. The pipeline works with
core.models.RemoteDevice, which `RhidDevice.to_remote()` produces.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from core.models.attendance import RemoteDevice


class RhidBaseModel(BaseModel):
    """Base model for RHiD API payloads."""
    model_config = ConfigDict(populate_by_name=True)


class RhidLoginResponse(RhidBaseModel):
    """Response of POST /login."""
    access_token: str = Field(..., alias="accessToken")


class RhidDevice(RhidBaseModel):
    """One record of GET /device."""
    id: int
    name: str
    status: str

    def to_remote(self) -> RemoteDevice:
        return RemoteDevice(id=self.id, name=self.name, status=self.status)


class RhidDevicesResponse(RhidBaseModel):
    """A page of GET /device?start=&length=."""
    records: List[RhidDevice] = Field(default_factory=list)
    total_records: int = Field(..., alias="totalRecords")
