"""
Incremental synchronization: checkpoint, watermark filter and the cycle driver.
"""

from avcimporter.sync.checkpoint import Checkpoint, load_checkpoint, save_checkpoint
from avcimporter.sync.filter import PartitionResult, partition
from avcimporter.sync.orchestrator import TransferOrchestrator

__all__ = [
    "Checkpoint",
    "PartitionResult",
    "TransferOrchestrator",
    "load_checkpoint",
    "partition",
    "save_checkpoint",
]
