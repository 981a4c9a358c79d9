"""Settings API endpoints for per-service credentials."""
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field

from dashboard.models.user_setting import ConfigValue, UserSetting, UserSettingRead
from dashboard.services import service_catalog
from dashboard.services.key_validation import validate_key_format
from dashboard.services.settings_service import SettingsService, get_settings_service
from dashboard.services.settings_store import SettingValidationError, require_service_name

router = APIRouter(prefix="/settings", tags=["settings"])

ALLOWED_METHODS = ["GET", "POST", "DELETE"]


class SettingSaveRequest(BaseModel):
    """Request body for saving a setting; field names match the dashboard client."""
    model_config = ConfigDict(populate_by_name=True)

    service_name: Optional[str] = Field(default=None, alias="serviceName")
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    additional_config: Optional[Dict[str, ConfigValue]] = Field(default=None, alias="additionalConfig")


class SettingSaveResponse(BaseModel):
    success: bool = True
    data: UserSettingRead
    message: str = "Settings saved successfully"


class SettingDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Settings deleted"


class ServiceStatus(BaseModel):
    """Configuration state of a single service."""
    service_name: str
    category: str
    description: str
    value: str  # masked
    is_set: bool
    source: str  # "database", "environment", or "none"
    has_additional_config: bool


class KeyValidationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_name: Optional[str] = Field(default=None, alias="serviceName")
    api_key: str = Field(default="", alias="apiKey")


class KeyValidationResponse(BaseModel):
    valid: bool
    message: str


def _to_read(setting: UserSetting) -> UserSettingRead:
    return UserSettingRead(
        id=setting.id,
        user_id=setting.user_id,
        service_name=setting.service_name,
        api_key=setting.api_key,
        additional_config=setting.additional_config or {},
        created_at=setting.created_at,
        updated_at=setting.updated_at,
    )


@router.get("")
def read_settings(
    service: Optional[str] = None,
    settings_service: SettingsService = Depends(get_settings_service),
):
    """
    Get stored settings.

    Without ``service`` returns every record of the user. With ``service``
    returns that record or 404 when it is not configured.
    """
    if service:
        return _to_read(settings_service.get_setting(service))
    return [_to_read(s) for s in settings_service.list_settings()]


@router.post("", response_model=SettingSaveResponse)
def save_settings(
    payload: SettingSaveRequest,
    settings_service: SettingsService = Depends(get_settings_service),
):
    """Insert or update the setting for ``serviceName``."""
    setting = settings_service.save_setting(
        payload.service_name,
        payload.api_key,
        payload.additional_config,
    )
    return SettingSaveResponse(data=_to_read(setting))


@router.delete("", response_model=SettingDeleteResponse)
def delete_settings(
    service: Optional[str] = None,
    settings_service: SettingsService = Depends(get_settings_service),
):
    """Delete the setting for ``service``. Deleting an unknown service succeeds."""
    settings_service.delete_setting(service)
    return SettingDeleteResponse()


@router.options("")
def settings_preflight():
    return Response(status_code=200)


@router.get("/services", response_model=List[ServiceStatus])
def read_service_overview(settings_service: SettingsService = Depends(get_settings_service)):
    """
    Get the configuration state of every known service.

    For security, actual key values are masked in the response.
    """
    return [ServiceStatus(**entry) for entry in settings_service.get_service_overview()]


@router.post("/validate", response_model=KeyValidationResponse)
def validate_settings(payload: KeyValidationRequest):
    """Check a key or account handle against the known format of its service."""
    service_name = require_service_name(payload.service_name)
    is_social = service_catalog.is_social_account(service_name)
    try:
        validate_key_format(service_name, payload.api_key)
    except SettingValidationError as exc:
        return KeyValidationResponse(valid=False, message=exc.message)

    if is_social:
        return KeyValidationResponse(valid=True, message="Account info validated")
    return KeyValidationResponse(valid=True, message=f"{service_name} key format looks valid")
