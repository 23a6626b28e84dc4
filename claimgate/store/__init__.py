# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package store provides the simulated document store owned by each
evaluation environment.
"""

from .types import (
    Document,
    DocumentStore,
    StoreStats,
)

from .memory import MemoryDocumentStore

__all__ = [
    'Document',
    'DocumentStore',
    'StoreStats',
    'MemoryDocumentStore',
]
