"""
X12 codec: envelope extraction, 997 rendering and the flat cost/inventory feed.
"""

from avcimporter.edi.acknowledgment import AcknowledgmentBuilder, ack_filename
from avcimporter.edi.costinv import build_flat_cost_inv
from avcimporter.edi.envelope import EnvelopeExtractor, extract

__all__ = [
    "AcknowledgmentBuilder",
    "EnvelopeExtractor",
    "ack_filename",
    "build_flat_cost_inv",
    "extract",
]
