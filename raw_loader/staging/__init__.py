"""Batch staging components."""

from .batch_stager import BatchStager

__all__ = ['BatchStager']
