"""
Edges Kernel

Shared infrastructure for the spreadsheet ingestion pipeline:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Injectable clock
- SQLAlchemy base, engine and session scope
- The processed-file bookkeeping model
"""

__version__ = "0.1.0"
