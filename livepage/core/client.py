"""HTTP client for the page generation service."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests

from .errors import GenerationError
from .models import GeneratedDocument
from .settings import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

DEFAULT_API_URL = DEFAULT_SETTINGS["api_url"]
DEFAULT_MODEL = DEFAULT_SETTINGS["model"]
DEFAULT_TIMEOUT = int(DEFAULT_SETTINGS["request_timeout"])

FENCE_RE = re.compile(r"```(?:html)?\s*\n?(.*?)```", re.S | re.I)


def strip_fences(code: str) -> str:
    """Return the contents of a fenced html block when the service left one in."""
    match = FENCE_RE.search(code)
    return match.group(1).strip() if match else code.strip()


@dataclass
class GenerationResult:
    document: GeneratedDocument
    model: str

    @property
    def code(self) -> str:
        return self.document.code


class GenerationClient:
    def __init__(self, api_url: str = DEFAULT_API_URL, model: str = DEFAULT_MODEL,
                 timeout: float = DEFAULT_TIMEOUT) -> None:
        self.api_url = api_url
        self.model = model
        self.timeout = timeout

    def generate(self, prompt: str, model: Optional[str] = None) -> GenerationResult:
        """Request a page for ``prompt``. Raises GenerationError on any failure."""
        if not prompt or not prompt.strip():
            raise GenerationError("Prompt is required")
        model = model or self.model
        logger.info("client: generating with %s", model)
        try:
            response = requests.post(
                self.api_url,
                json={"prompt": prompt, "model": model},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GenerationError("Could not reach the generation service", str(exc)) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.status_code >= 400 or "error" in payload:
            message = str(payload.get("error") or f"Request failed ({response.status_code})")
            details = str(payload.get("details") or "")
            raise GenerationError(message, details)

        code = payload.get("code")
        if not payload.get("success", True) or not isinstance(code, str) or not code.strip():
            raise GenerationError("Generation service returned no page")

        code = strip_fences(code)
        echoed = str(payload.get("prompt") or prompt)
        return GenerationResult(GeneratedDocument(code=code, prompt=echoed), model)
