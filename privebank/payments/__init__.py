"""Pagamentos PIX: gateway e reconciliação de depósitos."""
