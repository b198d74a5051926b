"""
Describe/Score oracle client.

The pipeline talks to the multimodal model only through
``Oracle.describe(request) -> dict`` so tests can substitute a
deterministic stub.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from openai import OpenAI, OpenAIError

from .errors import OracleError

logger = logging.getLogger("visual_worker")


@dataclass
class OracleRequest:
    """One oracle call: system role text plus user text and image references"""
    system: str
    text: str
    image_urls: List[str] = field(default_factory=list)

    def user_content(self) -> List[Dict[str, Any]]:
        content = [{"type": "text", "text": self.text}]
        for url in self.image_urls:
            content.append({"type": "image_url", "image_url": {"url": url}})
        return content


class Oracle(ABC):
    """Narrow interface to the external inference service"""

    @abstractmethod
    def describe(self, request: OracleRequest) -> Dict[str, Any]:
        """
        Send a request and return the decoded JSON object.

        Raises:
            OracleError: if the response is empty, unparsable or not an object
        """
        pass


def parse_json_object(content: Optional[str]) -> Dict[str, Any]:
    """Decode a model reply that must be a single JSON object"""
    if content is None or not content.strip():
        raise OracleError("Empty oracle response")

    text = content.strip()
    # Tolerate a markdown code fence around the object
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
        text = text.strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise OracleError(f"Unparsable oracle response: {e}") from e

    if not isinstance(data, dict):
        raise OracleError(f"Oracle response is not a JSON object (got {type(data).__name__})")
    return data


class OpenAIOracle(Oracle):
    """Oracle backed by OpenAI chat completions in JSON mode"""

    def __init__(self, model: str = "gpt-4.1", api_key: Optional[str] = None,
                 timeout: float = 120.0, temperature: float = 0.2, client: Optional[OpenAI] = None):
        self.model = model
        self.temperature = temperature
        self.client = client or OpenAI(api_key=api_key, timeout=timeout)

    def describe(self, request: OracleRequest) -> Dict[str, Any]:
        logger.debug(f"Calling {self.model} with {len(request.image_urls)} images")

        params = {
            "model": self.model,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": request.system},
                {"role": "user", "content": request.user_content()}
            ],
            "temperature": self.temperature
        }

        try:
            response = self.client.chat.completions.create(**params)
        except OpenAIError as e:
            raise OracleError(f"Oracle request failed: {e}") from e

        if not response.choices:
            raise OracleError("Empty oracle response")
        return parse_json_object(response.choices[0].message.content)
