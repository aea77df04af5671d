"""Cardapio administration CLI."""
