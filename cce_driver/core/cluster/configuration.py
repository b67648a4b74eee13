from pydantic import BaseModel, Field


class AuthInfo(BaseModel):
    auth_url: str = ''
    token: str = ''
    username: str = ''
    password: str = ''
    project_name: str = ''
    domain_name: str = ''
    access_key: str = ''
    secret_key: str = ''


class ElasticIPOptions(BaseModel):
    ip_type: str = '5_bgp'
    bandwidth_size: int = 100
    share_type: str = 'PER'


class VolumeSpec(BaseModel):
    size: int
    volume_type: str = 'SATA'


class NodeConfiguration(BaseModel):
    flavor: str = 's3.large.2'
    availability_zone: str = 'eu-de-01'
    key_pair: str = ''
    os: str = 'EulerOS 2.5'
    root_volume: VolumeSpec = Field(default_factory=lambda: VolumeSpec(size=40))
    data_volumes: list[VolumeSpec] = Field(default_factory=lambda: [VolumeSpec(size=100)])
    billing_mode: int = 0
    bms_period_type: str = 'month'
    bms_period_num: int = 1
    bms_auto_renew: bool = False
