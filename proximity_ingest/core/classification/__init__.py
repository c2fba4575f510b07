from .status_classifier import StatusClassifier, Thresholds, classify

__all__ = ["StatusClassifier", "Thresholds", "classify"]
