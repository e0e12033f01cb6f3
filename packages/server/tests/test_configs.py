"""
Tests for configuration value objects and their validation errors.
"""

from __future__ import annotations

import pytest

from app.core.errors import (
    InvalidDeploymentConfig,
    InvalidModelConfig,
    InvalidPageContent,
    InvalidRevenueConfig,
    ValidationError,
)
from app.services.validation import (
    validate_deployment_request,
    validate_model_config,
    validate_page_content,
    validate_revenue_config,
)
from aisp_shared.schemas.configs import (
    CustomModel,
    HuggingFaceModel,
    TeachableMachineModel,
)

TM_URL = "https://teachablemachine.withgoogle.com/models/abc123/"


class TestModelConfig:
    def test_teachable_machine(self):
        config = validate_model_config({"type": "teachable-machine", "model_url": TM_URL})
        assert isinstance(config, TeachableMachineModel)
        assert config.model_id == "abc123"
        assert config.configuration.model_kind == "image"

    def test_teachable_machine_trailing_slash_added(self):
        config = validate_model_config(
            {"type": "teachable-machine", "model_url": TM_URL.rstrip("/")}
        )
        assert config.model_url == TM_URL

    def test_teachable_machine_wrong_host(self):
        with pytest.raises(InvalidModelConfig) as exc:
            validate_model_config(
                {"type": "teachable-machine", "model_url": "https://example.com/models/abc123/"}
            )
        assert exc.value.details[0]["loc"].startswith("teachable-machine.model_url")

    def test_not_a_url(self):
        with pytest.raises(InvalidModelConfig):
            validate_model_config({"type": "teachable-machine", "model_url": "not-a-url"})

    def test_unknown_type(self):
        with pytest.raises(InvalidModelConfig) as exc:
            validate_model_config({"type": "tensorflow-hub", "model_url": TM_URL})
        assert exc.value.code == "INVALID_MODEL_CONFIG"
        assert isinstance(exc.value, ValidationError)

    def test_missing_url(self):
        with pytest.raises(InvalidModelConfig):
            validate_model_config({"type": "custom"})

    def test_huggingface_requires_task(self):
        with pytest.raises(InvalidModelConfig):
            validate_model_config(
                {
                    "type": "huggingface",
                    "model_url": "https://api-inference.huggingface.co/models/org/model",
                    "configuration": {},
                }
            )

    def test_huggingface_host(self):
        config = validate_model_config(
            {
                "type": "huggingface",
                "model_url": "https://api-inference.huggingface.co/models/org/sentiment",
                "configuration": {"task": "text-classification"},
            }
        )
        assert isinstance(config, HuggingFaceModel)
        assert config.model_id == "sentiment"

        with pytest.raises(InvalidModelConfig):
            validate_model_config(
                {
                    "type": "huggingface",
                    "model_url": "https://models.example.com/org/sentiment",
                    "configuration": {"task": "text-classification"},
                }
            )

    def test_unknown_configuration_keys_rejected(self):
        with pytest.raises(InvalidModelConfig) as exc:
            validate_model_config(
                {
                    "type": "teachable-machine",
                    "model_url": TM_URL,
                    "configuration": {"classes": ["a"], "colour": "blue"},
                }
            )
        assert any(d["type"] == "extra_forbidden" for d in exc.value.details)

    def test_custom_model_explicit_id(self):
        config = validate_model_config(
            {"type": "custom", "model_url": "https://ml.example.com/predict", "model_id": "m-1"}
        )
        assert isinstance(config, CustomModel)
        assert config.model_id == "m-1"
        assert config.configuration.method == "POST"

    def test_config_is_immutable(self):
        config = validate_model_config({"type": "teachable-machine", "model_url": TM_URL})
        with pytest.raises(Exception):
            config.model_url = "https://example.com/"


class TestDeploymentRequest:
    def test_valid(self):
        request = validate_deployment_request(
            {"platform": "cloudflare-pages", "repository_url": "https://github.com/acme/demo"}
        )
        assert request.platform.value == "cloudflare-pages"

    def test_unknown_platform(self):
        with pytest.raises(InvalidDeploymentConfig):
            validate_deployment_request(
                {"platform": "heroku", "repository_url": "https://github.com/acme/demo"}
            )

    def test_relative_repository_url(self):
        with pytest.raises(InvalidDeploymentConfig):
            validate_deployment_request({"platform": "vercel", "repository_url": "acme/demo"})


class TestRevenueConfig:
    def test_enabled_needs_publisher_id(self):
        with pytest.raises(InvalidRevenueConfig):
            validate_revenue_config({"adsense_enabled": True})

    def test_publisher_id_shape(self):
        with pytest.raises(InvalidRevenueConfig):
            validate_revenue_config({"adsense_enabled": True, "adsense_publisher_id": "ca-pub-12"})
        config = validate_revenue_config(
            {"adsense_enabled": True, "adsense_publisher_id": "pub-1234567890"}
        )
        assert config.adsense_publisher_id == "pub-1234567890"

    def test_disabled_drops_publisher_id(self):
        config = validate_revenue_config(
            {"adsense_enabled": False, "adsense_publisher_id": "pub-123"}
        )
        assert config.adsense_publisher_id is None

    def test_ad_units_keep_order(self):
        config = validate_revenue_config(
            {
                "adsense_enabled": False,
                "ad_units": [
                    {"position": "top", "size": "728x90", "code": "<ins></ins>"},
                    {"position": "sidebar", "size": "300x250", "code": "<ins></ins>"},
                ],
            }
        )
        assert [u.position for u in config.ad_units] == ["top", "sidebar"]


class TestPageContent:
    def test_all_optional(self):
        content = validate_page_content({})
        assert content.title is None

    def test_unknown_keys_rejected(self):
        with pytest.raises(InvalidPageContent):
            validate_page_content({"title": "Hi", "footer": "nope"})

    def test_title_length(self):
        with pytest.raises(InvalidPageContent):
            validate_page_content({"title": "x" * 201})
