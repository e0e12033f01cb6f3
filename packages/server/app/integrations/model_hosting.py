"""
Reachability checks and test predictions against hosted AI models.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import structlog

from app.core.errors import AdapterError
from aisp_shared.schemas.configs import (
    AIModelConfig,
    CustomModel,
    HuggingFaceModel,
    TeachableMachineModel,
)
from aisp_shared.schemas.projects import Prediction

log = structlog.get_logger()


def _parse_predictions(provider: str, body: Any) -> list[Prediction]:
    """Accept ``[{label, score|confidence}]``, one level of nesting, or ``{"predictions": [...]}``."""
    if isinstance(body, dict) and "predictions" in body:
        body = body["predictions"]
    if isinstance(body, list) and body and isinstance(body[0], list):
        body = body[0]
    if not isinstance(body, list):
        raise AdapterError(provider, "Model response is not a list of predictions")

    predictions = []
    for item in body:
        if not isinstance(item, dict) or "label" not in item:
            raise AdapterError(provider, "Model response item has no label")
        confidence = item.get("score", item.get("confidence", 0.0))
        try:
            predictions.append(
                Prediction(label=str(item["label"]), confidence=float(confidence))
            )
        except (TypeError, ValueError) as exc:
            raise AdapterError(provider, f"Unusable confidence value {confidence!r}") from exc
    predictions.sort(key=lambda p: p.confidence, reverse=True)
    return predictions


class HttpModelAdapter:
    """ModelAdapter for Teachable Machine, Hugging Face inference and custom endpoints."""

    def __init__(self, client: httpx.AsyncClient, huggingface_token: str = ""):
        self._client = client
        self._huggingface_token = huggingface_token

    async def _request(self, provider: str, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("model.unreachable", provider=provider, url=url, error=str(exc))
            raise AdapterError(provider, f"Model endpoint unreachable: {exc}") from exc

    def _hf_headers(self, config: HuggingFaceModel) -> dict[str, str]:
        if not self._huggingface_token:
            if config.configuration.token_required:
                raise AdapterError("huggingface", "This model requires an API token and none is configured")
            return {}
        return {"Authorization": f"Bearer {self._huggingface_token}"}

    async def validate_model(self, config: AIModelConfig) -> None:
        if isinstance(config, TeachableMachineModel):
            await self._teachable_machine_labels(config)
        elif isinstance(config, HuggingFaceModel):
            resp = await self._request(
                config.type,
                "POST",
                config.model_url,
                json={"inputs": "test input"},
                headers=self._hf_headers(config),
            )
            # a 400 means the model exists and rejected the probe input
            if resp.status_code >= 300 and resp.status_code != 400:
                raise AdapterError(config.type, f"Model check failed with HTTP {resp.status_code}")
        elif isinstance(config, CustomModel):
            settings = config.configuration
            resp = await self._request(
                config.type,
                settings.method,
                config.model_url,
                headers=settings.headers,
                json={"test": True} if settings.method == "POST" else None,
            )
            if resp.status_code >= 300:
                raise AdapterError(config.type, f"Model check failed with HTTP {resp.status_code}")
        log.info("model.validated", model_type=config.type, model_id=config.model_id)

    async def _teachable_machine_labels(self, config: TeachableMachineModel) -> list[str]:
        resp = await self._request(config.type, "GET", f"{config.model_url}metadata.json")
        if resp.status_code != 200:
            raise AdapterError(config.type, f"metadata.json returned HTTP {resp.status_code}")
        try:
            metadata = resp.json()
        except ValueError as exc:
            raise AdapterError(config.type, "metadata.json is not valid JSON") from exc
        labels = metadata.get("labels") if isinstance(metadata, dict) else None
        if not isinstance(labels, list) or not labels:
            raise AdapterError(config.type, "metadata.json lists no class labels")
        return [str(label) for label in labels]

    async def predict(self, config: AIModelConfig, sample_input: Any) -> list[Prediction]:
        if isinstance(config, TeachableMachineModel):
            # TF.js models only run in the browser; confirm the model loads and report its classes
            labels = await self._teachable_machine_labels(config)
            return [Prediction(label=label, confidence=0.0) for label in labels]

        headers: Optional[dict[str, str]]
        if isinstance(config, HuggingFaceModel):
            headers = self._hf_headers(config)
            method = "POST"
            body: Any = {"inputs": sample_input}
        else:
            headers = config.configuration.headers
            method = config.configuration.method
            body = sample_input

        resp = await self._request(
            config.type,
            method,
            config.model_url,
            headers=headers,
            json=body if method == "POST" else None,
        )
        if resp.status_code >= 300:
            raise AdapterError(config.type, f"Prediction failed with HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise AdapterError(config.type, "Model returned a non-JSON response") from exc
        return _parse_predictions(config.type, payload)
