"""PriveBank: depósitos PIX na carteira (AbacatePay)."""

__version__ = "0.1.0"
