"""Pipeline - Orquestación por mensaje."""

from .processor import IngestionPipeline, ProcessedReading

__all__ = ["IngestionPipeline", "ProcessedReading"]
