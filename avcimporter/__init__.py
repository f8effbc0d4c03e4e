"""
AVC Importer.

Acknowledges inbound X12 850 purchase orders with 997s over SFTP and
incrementally pulls the vendor purchase-order feed into local storage.
"""

__version__ = "0.1.0"
