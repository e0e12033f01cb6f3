from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel

class ProjectStatus(str, Enum):
    DRAFT = "draft"
    DEVELOPING = "developing"
    DEPLOYED = "deployed"
    ARCHIVED = "archived"

class ProjectType(str, Enum):
    LOW_CODE = "LOW_CODE"
    NO_CODE = "NO_CODE"

class ProjectEvent(str, Enum):
    BEGIN_DEVELOPMENT = "begin_development"
    ATTACH_AI_MODEL = "attach_ai_model"
    DETACH_AI_MODEL = "detach_ai_model"
    ATTACH_REVENUE_CONFIG = "attach_revenue_config"
    UPDATE_PAGE_CONTENT = "update_page_content"
    START_DEPLOYMENT = "start_deployment"
    DEPLOYMENT_SUCCEEDED = "deployment_succeeded"
    DEPLOYMENT_FAILED = "deployment_failed"
    REDEPLOY = "redeploy"
    ARCHIVE = "archive"
    RESTORE = "restore"

class AIModelType(str, Enum):
    TEACHABLE_MACHINE = "teachable-machine"
    HUGGINGFACE = "huggingface"
    CUSTOM = "custom"

class DeploymentPlatform(str, Enum):
    CLOUDFLARE_PAGES = "cloudflare-pages"
    VERCEL = "vercel"
    NETLIFY = "netlify"


class DeploymentState(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

class Locale(str, Enum):
    EN = "en"
    KO = "ko"

# Known categories; category stays an open string on the project itself
PROJECT_CATEGORIES: list[str] = [
    "image-classification",
    "text-analysis",
    "audio-recognition",
    "pose-detection",
    "object-detection",
    "sentiment-analysis",
    "chatbot",
    "recommendation",
    "other",
]

class Pagination(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int

class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None

class APIResponse(BaseModel):
    data: Optional[object] = None
    error: Optional[ErrorBody] = None
