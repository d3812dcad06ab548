"""
Vision View Classifier
======================

View classifier backed by Google Cloud Vision label detection.

This backend:
    - Sends the JPEG to the Vision API label detector (off the event loop)
    - Walks returned labels from highest to lowest score
    - Maps the first label matching a category keyword to that category
    - Falls back to USELESS when nothing matches

Design Rules:
    - Fail fast on misconfiguration (missing library, bad credentials)
    - API errors raise ClassifierError; the gate maps them to USELESS
"""

import asyncio
import logging
from typing import Dict, List, Optional

from bridgewatch.exceptions import ClassifierError
from bridgewatch.models.view import ViewCategory


logger = logging.getLogger(__name__)


class VisionViewClassifier:
    """
    Label-detection classifier using Google Cloud Vision.

    Attributes:
        keywords: Label keywords per category (checked in dict order)
        min_label_score: Labels below this score are ignored
    """

    def __init__(
        self,
        keywords: Dict[str, List[str]],
        min_label_score: float = 0.5,
        credentials_path: Optional[str] = None,
        client=None,
    ) -> None:
        """
        Initialize Vision classifier.

        Args:
            keywords: Mapping of category name to label keywords
            min_label_score: Minimum label confidence to consider
            credentials_path: Service account JSON (None = default credentials)
            client: Pre-built ImageAnnotatorClient (tests)

        Raises:
            ImportError: If google-cloud-vision is not installed
            ValueError: If keywords reference an unknown or useless category
        """
        self.keywords: Dict[ViewCategory, List[str]] = {}
        for name, words in keywords.items():
            category = ViewCategory.parse(name)
            if not category.is_useful:
                raise ValueError(f"Unknown view category in keywords: {name}")
            self.keywords[category] = [w.lower() for w in words]

        self.min_label_score = min_label_score
        self._api_call_count: int = 0

        self._client = client
        if self._client is None:
            self._init_client(credentials_path)

        logger.info(
            f"VisionViewClassifier initialized: "
            f"categories={[c.value for c in self.keywords]}, "
            f"min_label_score={min_label_score}"
        )

    def _init_client(self, credentials_path: Optional[str]) -> None:
        """Initialize Google Cloud Vision client."""
        try:
            from google.cloud import vision

            if credentials_path:
                self._client = vision.ImageAnnotatorClient.from_service_account_json(
                    credentials_path
                )
                logger.info(f"Vision client initialized from: {credentials_path}")
            else:
                self._client = vision.ImageAnnotatorClient()
                logger.info("Vision client initialized with default credentials")

        except ImportError:
            raise ImportError(
                "google-cloud-vision is required for VisionViewClassifier. "
                "Install with: pip install google-cloud-vision"
            )
        except Exception as e:
            raise ClassifierError(f"Failed to initialize Vision client: {e}")

    async def classify(self, image: bytes) -> ViewCategory:
        """
        Classify a still from its Vision API labels.

        Raises:
            ClassifierError: If the API reports an error
        """
        from google.cloud import vision

        response = await asyncio.to_thread(
            self._client.label_detection,
            image=vision.Image(content=image),
        )
        self._api_call_count += 1

        if response.error.message:
            raise ClassifierError(f"Vision API: {response.error.message}")

        labels = [
            (label.description.lower(), label.score)
            for label in response.label_annotations
        ]
        return self.match_labels(labels)

    def match_labels(self, labels: List[tuple]) -> ViewCategory:
        """
        Map (description, score) labels to a category.

        Args:
            labels: Label descriptions with their scores

        Returns:
            Category of the best-scoring matching label, else USELESS
        """
        for description, score in sorted(labels, key=lambda item: -item[1]):
            if score < self.min_label_score:
                break
            for category, words in self.keywords.items():
                if any(word in description for word in words):
                    logger.debug(f"Label '{description}' ({score:.2f}) -> {category.value}")
                    return category
        return ViewCategory.USELESS

    def get_metrics(self) -> dict:
        return {"api_call_count": self._api_call_count}
