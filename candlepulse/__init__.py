"""CandlePulse – agregación de velas en tiempo real y scoring de señales técnicas."""

__version__ = "0.1.0"
