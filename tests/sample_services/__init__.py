"""Importable package scanned by the registry tests."""
