"""UserSetting model for persisting per-service credentials."""
from typing import Optional, Dict, Union
from datetime import datetime, timezone
from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


ConfigValue = Union[str, bool]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserSettingBase(SQLModel):
    user_id: str = Field(default="default_user", index=True)
    service_name: str
    api_key: str = ""


class UserSetting(UserSettingBase, table=True):
    """One credential record per (user, service)."""
    __tablename__ = "user_settings"
    __table_args__ = (
        UniqueConstraint("user_id", "service_name", name="uq_user_settings_user_service"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    additional_config: Dict[str, ConfigValue] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class UserSettingRead(UserSettingBase):
    id: int
    additional_config: Dict[str, ConfigValue] = {}
    created_at: datetime
    updated_at: datetime
