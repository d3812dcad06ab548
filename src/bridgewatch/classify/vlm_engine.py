"""
VLM View Classifier
===================

View classifier backed by an OpenAI-compatible vision-language model.

The still is sent as a base64 data URL together with a one-word
classification prompt describing the camera's presets. The reply is
matched by substring (BRIDGE, PROCESSING, WIDE in that order); any other
reply means USELESS.
"""

import asyncio
import base64
import logging
import os
from typing import Optional

from openai import OpenAI

from bridgewatch.exceptions import ClassifierError
from bridgewatch.models.view import ViewCategory


logger = logging.getLogger(__name__)


CLASSIFY_PROMPT = """Classify this Maseru Border camera image. Reply with ONLY one word:

- BRIDGE: Shows bridge over river with orange/red pillar, vehicles on bridge lanes
- PROCESSING: Shows green curved roof canopy/shelter, vehicles in processing yard
- WIDE: Shows Engen petrol station OR Chiefs Fast Foods sign OR road with many vehicles heading to border
- USELESS: Shows mainly trees, bushes, greenery, darkness, sky, or no clear road/vehicles visible

IMPORTANT: If the image is mostly trees/vegetation with no clear infrastructure, answer USELESS.

Reply with ONE word only."""


def parse_reply(text: Optional[str]) -> ViewCategory:
    """
    Map a model reply to a view category.

    Matching is by substring on the upper-cased reply, so "Bridge." and
    "BRIDGE VIEW" both count. Order matters: BRIDGE wins over PROCESSING.
    """
    if not text:
        return ViewCategory.USELESS
    result = text.strip().upper()
    if "BRIDGE" in result:
        return ViewCategory.BRIDGE
    if "PROCESSING" in result:
        return ViewCategory.PROCESSING
    if "WIDE" in result:
        return ViewCategory.WIDE
    return ViewCategory.USELESS


class VLMViewClassifier:
    """
    OpenAI-compatible chat completion classifier.

    Attributes:
        model: Model name sent with each request
        max_tokens: Reply length cap
        temperature: Sampling temperature
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        api_key_env: str = "OPENAI_API_KEY",
        base_url: Optional[str] = None,
        max_tokens: int = 10,
        temperature: float = 0.0,
        timeout_seconds: float = 30.0,
        client: Optional[OpenAI] = None,
    ) -> None:
        """
        Initialize VLM classifier.

        Args:
            model: Model name
            api_key: API key (falls back to the ``api_key_env`` variable)
            api_key_env: Environment variable holding the key
            base_url: Alternative API base URL
            max_tokens: Max tokens in the reply
            temperature: Sampling temperature
            timeout_seconds: Per-request HTTP timeout
            client: Pre-built OpenAI client (tests)

        Raises:
            ValueError: If no API key is available and no client is given
        """
        if client is None:
            key = api_key or os.getenv(api_key_env)
            if not key:
                raise ValueError(f"Missing {api_key_env}, cannot call the VLM backend")
            client = OpenAI(api_key=key, base_url=base_url, timeout=timeout_seconds)

        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds

        logger.info(f"VLMViewClassifier initialized: model={model}")

    def build_messages(self, image: bytes) -> list:
        data = base64.b64encode(image).decode("ascii")
        return [
            {
                "role": "user",
                "content": [
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/jpeg;base64,{data}"},
                    },
                    {"type": "text", "text": CLASSIFY_PROMPT},
                ],
            }
        ]

    async def classify(self, image: bytes) -> ViewCategory:
        """
        Classify a still with one chat completion.

        Raises:
            ClassifierError: If the API call fails
        """
        try:
            completion = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=self.model,
                messages=self.build_messages(image),
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            raise ClassifierError(f"VLM request failed: {e}") from e

        text = completion.choices[0].message.content
        logger.debug(f"VLM reply: {text!r}")
        return parse_reply(text)
