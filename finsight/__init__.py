"""Finsight: recuperação de gráficos a partir de análises textuais."""

__version__ = "0.1.0"
