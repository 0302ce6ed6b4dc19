"""Management API response schemas."""
from pydantic import BaseModel, ConfigDict
from typing import Optional


class _ApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Service(_ApiModel):
    id: str
    name: str = ""
    version: Optional[int] = None


class Version(_ApiModel):
    service_id: str
    number: int
    active: bool = False
    locked: bool = False
    updated_at: Optional[str] = None


class Papertrail(_ApiModel):
    service_id: str
    service_version: int
    name: str
    address: str = ""
    port: int = 0
    format: str = ""
    format_version: int = 2
    response_condition: str = ""
    placement: str = ""


class Openstack(_ApiModel):
    service_id: str
    service_version: int
    name: str
    bucket_name: str = ""
    access_key: str = ""
    user: str = ""
    url: str = ""
    public_key: str = ""
    path: str = ""
    period: int = 3600
    gzip_level: int = 0
    format: str = ""
    format_version: int = 2
    message_type: str = ""
    response_condition: str = ""
    timestamp_format: str = ""
    placement: str = ""
    compression_codec: str = ""


class Snippet(_ApiModel):
    id: str = ""
    service_id: str
    service_version: int
    name: str
    type: str = ""
    priority: int = 100
    dynamic: int = 0
    content: str = ""
