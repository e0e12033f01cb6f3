"""
Message catalogue for user-facing text.

The locale is always passed in by the caller; there is no module-level
"current locale".
"""

from __future__ import annotations

from typing import Any

import structlog

from aisp_shared.schemas.common import Locale

log = structlog.get_logger()

MESSAGES: dict[Locale, dict[str, Any]] = {
    Locale.EN: {
        "page": {
            "default_title": "My No-Code Page",
            "default_heading": "Welcome!",
            "default_body": "This is a page generated from your content.",
            "image_alt": "Page Image",
            "footer": "Powered by AI Service Platform",
        },
        "validation": {
            "project_name_required": "Please enter a project name",
            "url_invalid": "Please enter a valid URL",
            "model_id_required": "Please enter a model ID",
        },
    },
    Locale.KO: {
        "page": {
            "default_title": "나의 노코드 페이지",
            "default_heading": "환영합니다!",
            "default_body": "입력하신 내용으로 생성된 페이지입니다.",
            "image_alt": "페이지 이미지",
            "footer": "AI Service Platform으로 제작됨",
        },
        "validation": {
            "project_name_required": "프로젝트 이름을 입력해주세요",
            "url_invalid": "유효한 URL을 입력해주세요",
            "model_id_required": "모델 ID를 입력해주세요",
        },
    },
}


def _lookup(catalogue: dict[str, Any], key: str) -> Any:
    node: Any = catalogue
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def translate(key: str, locale: Locale = Locale.EN, **replacements: str) -> str:
    """Dotted-key lookup, falling back to English and then to the key itself."""
    message = _lookup(MESSAGES[Locale(locale)], key)
    if not isinstance(message, str):
        log.debug("i18n.missing_key", key=key, locale=Locale(locale).value)
        message = _lookup(MESSAGES[Locale.EN], key)
        if not isinstance(message, str):
            return key
    for placeholder, value in replacements.items():
        message = message.replace("{{" + placeholder + "}}", value)
    return message
