"""
Batch Kernel

Cross-cutting infrastructure shared by the batch launcher:
- Structured JSON logging
- Typed exception hierarchy
- Injectable clock
- Metadata-store engine helpers
"""

__version__ = "0.1.0"
