"""
Detector contract and loading.

A detector classifies a raw cell value (email, name, phone, ...) and proposes
an anonymized substitute. Concrete detectors live outside this package and
are selected through the ``detector`` config section.
"""

import importlib
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from .exceptions import ConfigurationError
from .hints import Hint
from .models import DetectionResult


class Detector(ABC):
    """Contract for value detectors."""

    @abstractmethod
    def check(self, value: Any, label: str, hint: Optional[Hint]) -> list[DetectionResult]:
        """Classify a value.

        Args:
            value: Raw cell value or JSON leaf.
            label: Lower-case ``table.column`` (JSON leaves append their path).
            hint: Resolved policy for the cell, if any. ``hint.key_value`` holds
                  the row's key column value when the hint names a key column.

        Returns:
            Zero or one DetectionResult; an empty list means "not matched".
        """


class NullDetector(Detector):
    """Detector that never matches; values pass through unchanged."""

    def check(self, value: Any, label: str, hint: Optional[Hint]) -> list[DetectionResult]:
        return []


def load_detector(settings: Optional[dict[str, Any]]) -> Detector:
    """
    Instantiate the detector named by ``settings['class']`` (``module:Class``).

    Falls back to NullDetector when no detector is configured.
    """
    if not settings or not settings.get('class'):
        logging.warning("No detector configured, data will be dumped without anonymization")
        return NullDetector()

    path = settings['class']
    module_name, _, class_name = path.partition(':')
    if not class_name:
        module_name, _, class_name = path.rpartition('.')
    try:
        detector_class = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError, ValueError) as e:
        raise ConfigurationError(f"Cannot load detector '{path}': {e}") from e

    detector = detector_class(**(settings.get('options') or {}))
    if not isinstance(detector, Detector):
        raise ConfigurationError(f"'{path}' is not a Detector")
    logging.info(f"Using detector {path}")
    return detector
