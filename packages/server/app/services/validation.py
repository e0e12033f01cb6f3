"""
Pure validation of configuration payloads.

Each ``validate_*`` turns raw input into a value object or raises the matching
``ValidationError`` subclass with pydantic's error list as details.
"""

from __future__ import annotations

from typing import Any, Type

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import (
    InvalidDeploymentConfig,
    InvalidModelConfig,
    InvalidPageContent,
    InvalidRevenueConfig,
    ValidationError,
)
from aisp_shared.schemas.configs import (
    AIModelConfig,
    DeploymentRequest,
    PageContent,
    RevenueConfig,
    ai_model_config_adapter,
)


def error_details(exc: PydanticValidationError) -> list[dict[str, str]]:
    return [
        {
            "loc": ".".join(str(part) for part in err["loc"]),
            "msg": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def _validate(
    schema: Type[BaseModel] | TypeAdapter,
    data: Any,
    error_cls: Type[ValidationError],
    message: str,
):
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        if isinstance(schema, TypeAdapter):
            return schema.validate_python(data)
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise error_cls(message, details=error_details(exc)) from exc


def validate_model_config(data: Any) -> AIModelConfig:
    return _validate(ai_model_config_adapter, data, InvalidModelConfig, "Invalid AI model configuration")


def validate_deployment_request(data: Any) -> DeploymentRequest:
    return _validate(DeploymentRequest, data, InvalidDeploymentConfig, "Invalid deployment configuration")


def validate_revenue_config(data: Any) -> RevenueConfig:
    return _validate(RevenueConfig, data, InvalidRevenueConfig, "Invalid revenue configuration")


def validate_page_content(data: Any) -> PageContent:
    return _validate(PageContent, data, InvalidPageContent, "Invalid page content")
