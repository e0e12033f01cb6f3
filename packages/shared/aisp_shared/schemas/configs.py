"""Configuration value objects attached to a project.

Each object validates its own shape without I/O. Provider-side verification
(is the model reachable, is the publisher id real) belongs to the server's
integration adapters.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from .common import DeploymentPlatform, DeploymentState

TEACHABLE_MACHINE_URL = re.compile(
    r"^https://teachablemachine\.withgoogle\.com/models/[A-Za-z0-9_-]+/?$"
)
PUBLISHER_ID = re.compile(r"^pub-\d+$")


def is_absolute_url(value: str) -> bool:
    """True for http(s) URLs carrying both a scheme and a host."""
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _require_absolute_url(value: str) -> str:
    value = value.strip()
    if not is_absolute_url(value):
        raise ValueError(f"'{value}' is not an absolute http(s) URL")
    return value


class ValueObject(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())


# ---------------------------------------------------------------------------
# AI model
# ---------------------------------------------------------------------------


class TeachableMachineSettings(ValueObject):
    classes: List[str] = Field(default_factory=list)
    image_size: Optional[int] = Field(default=None, gt=0)
    model_kind: Literal["image", "audio", "pose"] = "image"


class HuggingFaceSettings(ValueObject):
    task: str = Field(min_length=1)
    pipeline: Optional[str] = None
    token_required: bool = False


class CustomModelSettings(ValueObject):
    method: Literal["GET", "POST"] = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    input_format: Optional[str] = None
    output_format: Optional[str] = None


class _ModelConfigBase(ValueObject):
    model_url: str
    model_id: Optional[str] = None

    @field_validator("model_url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        return _require_absolute_url(value)

    @model_validator(mode="after")
    def _default_model_id(self):
        if not self.model_id:
            segments = [s for s in urlsplit(self.model_url).path.split("/") if s]
            object.__setattr__(self, "model_id", segments[-1] if segments else self.model_url)
        return self


class TeachableMachineModel(_ModelConfigBase):
    type: Literal["teachable-machine"]
    configuration: TeachableMachineSettings = Field(default_factory=TeachableMachineSettings)

    @field_validator("model_url")
    @classmethod
    def _teachable_machine_url(cls, value: str) -> str:
        if not TEACHABLE_MACHINE_URL.match(value):
            raise ValueError(
                "Teachable Machine models must be shared as "
                "https://teachablemachine.withgoogle.com/models/<id>/"
            )
        return value if value.endswith("/") else value + "/"


class HuggingFaceModel(_ModelConfigBase):
    type: Literal["huggingface"]
    configuration: HuggingFaceSettings

    @field_validator("model_url")
    @classmethod
    def _huggingface_url(cls, value: str) -> str:
        host = urlsplit(value).hostname or ""
        if host != "huggingface.co" and not host.endswith(".huggingface.co"):
            raise ValueError("Hugging Face models must be served from huggingface.co")
        return value


class CustomModel(_ModelConfigBase):
    type: Literal["custom"]
    configuration: CustomModelSettings = Field(default_factory=CustomModelSettings)


AIModelConfig = Annotated[
    Union[TeachableMachineModel, HuggingFaceModel, CustomModel],
    Field(discriminator="type"),
]

ai_model_config_adapter: TypeAdapter[AIModelConfig] = TypeAdapter(AIModelConfig)


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------


class DeploymentRequest(ValueObject):
    """What a client supplies when starting a deployment."""

    platform: DeploymentPlatform
    repository_url: str
    provider_project_name: Optional[str] = None

    @field_validator("repository_url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        return _require_absolute_url(value)


class DeploymentConfig(ValueObject):
    """Latest deployment of a project; re-deploying replaces it in place."""

    platform: DeploymentPlatform
    repository_url: str
    state: DeploymentState = DeploymentState.PENDING
    started_at: Optional[datetime] = None
    deployment_id: Optional[str] = None
    deployment_url: Optional[str] = None
    last_deployed_at: Optional[datetime] = None
    last_error: Optional[str] = None
    provider_project_id: Optional[str] = None
    provider_project_name: Optional[str] = None
    domains: List[str] = Field(default_factory=list)

    @field_validator("repository_url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        return _require_absolute_url(value)


# ---------------------------------------------------------------------------
# Revenue
# ---------------------------------------------------------------------------


class AdUnit(ValueObject):
    id: Optional[str] = None
    name: Optional[str] = None
    position: str
    size: str
    code: str


class RevenueConfig(ValueObject):
    adsense_enabled: bool = False
    adsense_publisher_id: Optional[str] = None
    ad_units: List[AdUnit] = Field(default_factory=list)
    last_error: Optional[str] = None

    @model_validator(mode="after")
    def _publisher_id_shape(self):
        if not self.adsense_enabled:
            # the publisher id only exists while AdSense is on
            object.__setattr__(self, "adsense_publisher_id", None)
            return self
        if not self.adsense_publisher_id:
            raise ValueError("adsense_publisher_id is required when AdSense is enabled")
        if not PUBLISHER_ID.match(self.adsense_publisher_id):
            raise ValueError("adsense_publisher_id must look like 'pub-' followed by digits")
        return self


# ---------------------------------------------------------------------------
# No-code page content
# ---------------------------------------------------------------------------


class PageContent(ValueObject):
    title: Optional[str] = Field(default=None, max_length=200)
    heading: Optional[str] = Field(default=None, max_length=200)
    body: Optional[str] = None
    image_url: Optional[str] = None
