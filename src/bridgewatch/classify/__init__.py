"""
Classify Module
===============

View classification for captured stills.

Components:
    - ViewClassifier: Protocol for classification backends
    - MockViewClassifier: Scripted backend for testing
    - VisionViewClassifier: Google Cloud Vision label detection
    - VLMViewClassifier: OpenAI-compatible vision-language model
    - ClassifierGate: Single-flight, time-bounded front used by the pipeline

Backends are treated as black boxes. The pipeline only ever sees the
gate, which turns every failure into ``ViewCategory.USELESS``.
"""

import logging

from bridgewatch.classify.engine import (
    ClassifierGate,
    MockViewClassifier,
    ViewClassifier,
)
from bridgewatch.config import ClassifierConfig
from bridgewatch.models.view import ViewCategory


logger = logging.getLogger(__name__)


def create_classifier(config: ClassifierConfig) -> ViewClassifier:
    """
    Create a classifier backend from config.

    Fails fast if the backend name is unknown or its library is missing.
    """
    backend = config.backend

    if backend == "mock":
        logger.info("Using MockViewClassifier")
        return MockViewClassifier(
            sequence=[ViewCategory.parse(name) for name in config.mock.sequence],
        )

    elif backend == "vision":
        from bridgewatch.classify.vision_engine import VisionViewClassifier

        logger.info("Using VisionViewClassifier")
        return VisionViewClassifier(
            keywords=config.vision.keywords,
            min_label_score=config.vision.min_label_score,
            credentials_path=config.vision.credentials_path,
        )

    elif backend == "vlm":
        from bridgewatch.classify.vlm_engine import VLMViewClassifier

        logger.info(f"Using VLMViewClassifier: model={config.vlm.model}")
        return VLMViewClassifier(
            model=config.vlm.model,
            api_key_env=config.vlm.api_key_env,
            base_url=config.vlm.base_url,
            max_tokens=config.vlm.max_tokens,
            temperature=config.vlm.temperature,
            timeout_seconds=config.timeout_seconds,
        )

    else:
        raise ValueError(f"Unknown classifier backend: {backend}")


__all__ = [
    "ViewClassifier",
    "MockViewClassifier",
    "ClassifierGate",
    "create_classifier",
]
