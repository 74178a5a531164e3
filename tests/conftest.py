"""Shared test fixtures for the invoice OCR test suite."""

import datetime
import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from invoice_ocr.analysis.documents import MediaType, SourceDocument

MCDONALDS_TEXT = """McDonald's Châtelet
123 Rue de Rivoli
75001 PARIS

FACTURE N° FAC-2024-0156
Date: 15/01/2024

Commande:
- Big Mac Menu      12.50€
- Coca-Cola         2.80€
- Frites            3.20€

Total TTC: 18.50€
TVA 20%: 3.08€

Mode de paiement: CB
"""

SARL_TEXT = """SARL Dupont & Fils
12 avenue des Champs
69002 LYON

FACTURE N° 2024-017
Date d'émission: 28 février 2024

Conseil informatique  900.00€
Total HT: 900.00€
TVA 20%: 180.00€
Net à payer: 1080,00 €
"""


@pytest.fixture
def today() -> datetime.date:
    """Fixed reference date for recency scoring."""
    return datetime.date(2024, 6, 1)


@pytest.fixture
def mcdonalds_text() -> str:
    return MCDONALDS_TEXT


@pytest.fixture
def sarl_text() -> str:
    return SARL_TEXT


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


def make_png_bytes(width: int = 200, height: int = 100) -> bytes:
    """Encode a white-on-black PNG image."""
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[10 : height - 10, 10 : width - 10] = 255
    buf = io.BytesIO()
    Image.fromarray(pixels).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_png():
    """Factory fixture encoding PNG images of a given size."""
    return make_png_bytes


@pytest.fixture
def png_document() -> SourceDocument:
    return SourceDocument(content=make_png_bytes(), media_type=MediaType.PNG, name="receipt.png")


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
