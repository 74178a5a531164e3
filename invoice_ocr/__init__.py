"""Invoice OCR Analyzer.

Turns a scanned or digital invoice (PDF, JPEG or PNG) into a vendor name,
a transaction date, an amount and a canonical filename, each scored with a
confidence so that a human can review the suggestion.
"""

__version__ = "1.0.0"
